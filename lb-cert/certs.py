# lb-cert/certs.py
from dataclasses import dataclass
from datetime import datetime

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from errors import InvalidPEMError, MissingMaterialError

PEM_CERT_HEADER = "-----BEGIN CERTIFICATE-----"


@dataclass(frozen=True)
class ResolvedCertificate:
    domain: str
    not_after: datetime
    public_chain_pem: str
    private_key_pem: str

    @property
    def name(self) -> str:
        return certificate_name(self.domain, self.not_after)


def certificate_name(domain: str, not_after: datetime) -> str:
    return f"cert_{domain}_{not_after.strftime('%Y%m%d')}"


def expiry_of(pem: str) -> datetime:
    """Not-after of the first certificate in ``pem`` (the leaf of a fullchain)."""
    if PEM_CERT_HEADER not in (pem or ""):
        raise InvalidPEMError("No PEM certificate block found")
    try:
        cert = x509.load_pem_x509_certificate(pem.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as e:
        raise InvalidPEMError(f"Failed to parse certificate: {e}") from e
    return cert.not_valid_after_utc


def check_private_key(pem: str) -> None:
    try:
        serialization.load_pem_private_key(pem.encode("ascii"), password=None)
    except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm) as e:
        raise InvalidPEMError(f"Failed to parse private key: {e}") from e


def resolve_certificate(bundle: dict[str, dict[str, str]], domain: str) -> ResolvedCertificate:
    material = bundle.get(domain) or {}
    chain = material.get("fullchain")
    if not chain:
        raise MissingMaterialError(domain, "fullchain")
    key = material.get("privkey")
    if not key:
        raise MissingMaterialError(domain, "privkey")
    not_after = expiry_of(chain)
    check_private_key(key)
    return ResolvedCertificate(domain=domain, not_after=not_after,
                               public_chain_pem=chain, private_key_pem=key)
