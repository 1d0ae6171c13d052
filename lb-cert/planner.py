# lb-cert/planner.py
from dataclasses import dataclass

from certs import ResolvedCertificate
from models import LoadBalancerSnapshot


@dataclass(frozen=True)
class Skip:
    certificate_name: str


@dataclass(frozen=True)
class Install:
    certificate_name: str
    public_chain_pem: str
    private_key_pem: str


def plan(snapshot: LoadBalancerSnapshot, cert: ResolvedCertificate) -> Skip | Install:
    """Skip when a certificate with the derived name is already on the load balancer.

    The name is a function of domain and expiry only, so re-running against
    an unchanged archive always lands here.
    """
    name = cert.name
    if name in snapshot.certificates:
        return Skip(name)
    return Install(name, cert.public_chain_pem, cert.private_key_pem)
