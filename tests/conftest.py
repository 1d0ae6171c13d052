"""Shared fixtures: real certificates, real certbot-style archives, fake OCI clients."""
from __future__ import annotations

import io
import tarfile
from datetime import datetime, timezone
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from config import Settings
from errors import RemoteAPIError
from models import LoadBalancerSnapshot, WorkRequest

EXPIRY = datetime(2030, 1, 15, 12, 30, tzinfo=timezone.utc)
CERT_NAME = "cert_example.com_20300115"
LB_OCID = "ocid1.loadbalancer.oc1.phx.test"


def make_cert(domain: str = "example.com", not_after: datetime = EXPIRY) -> tuple[str, str]:
    """Self-signed EC certificate and its PKCS#8 key, both as PEM text."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domain)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime(2025, 1, 1, tzinfo=timezone.utc))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode()
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    return cert_pem, key_pem


def make_archive(entries: list[tuple[str, str | None, str | None]]) -> bytes:
    """Build a tar.gz from ``(path, content, link_target)`` entries, in order.

    Entries with a link target become symlinks; the rest regular files.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for path, content, target in entries:
            info = tarfile.TarInfo(path)
            if target is not None:
                info.type = tarfile.SYMTYPE
                info.linkname = target
                tf.addfile(info)
            else:
                data = (content or "").encode()
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def certbot_archive(cert_pem: str, key_pem: str, domain: str = "example.com") -> bytes:
    """The layout certbot leaves under /etc/letsencrypt, links listed first."""
    return make_archive([
        (f"etc/letsencrypt/live/{domain}/fullchain.pem", None, f"../../archive/{domain}/fullchain1.pem"),
        (f"etc/letsencrypt/live/{domain}/privkey.pem", None, f"../../archive/{domain}/privkey1.pem"),
        (f"etc/letsencrypt/live/{domain}/README", "do not move these files", None),
        (f"etc/letsencrypt/archive/{domain}/fullchain1.pem", cert_pem, None),
        (f"etc/letsencrypt/archive/{domain}/privkey1.pem", key_pem, None),
        ("etc/letsencrypt/renewal/example.com.conf", "version = 2.0.0", None),
    ])


def lb_document(certificates: list[str], listeners: dict[str, str | None]) -> dict[str, Any]:
    """GetLoadBalancer body; a listener mapped to None has no TLS."""
    docs = {}
    for name, cert in listeners.items():
        doc: dict[str, Any] = {
            "name": name,
            "defaultBackendSetName": "backend",
            "port": 443 if cert else 80,
            "protocol": "HTTP",
            "hostnameNames": ["example"],
            "ruleSetNames": [],
            "connectionConfiguration": {"idleTimeout": 60},
        }
        if cert:
            doc["sslConfiguration"] = {
                "certificateName": cert,
                "verifyDepth": 1,
                "verifyPeerCertificate": False,
                "protocols": ["TLSv1.2"],
            }
        docs[name] = doc
    return {
        "id": LB_OCID,
        "certificates": {c: {"certificateName": c} for c in certificates},
        "listeners": docs,
    }


def make_snapshot(certificates: list[str], listeners: dict[str, str | None]) -> LoadBalancerSnapshot:
    return LoadBalancerSnapshot.from_api(lb_document(certificates, listeners))


class FakeObjectStorage:
    def __init__(self, archive: bytes | None):
        self.archive = archive
        self.calls: list[tuple] = []

    def head(self, namespace: str, bucket: str, obj: str) -> bool:
        self.calls.append(("head", namespace, bucket, obj))
        return self.archive is not None

    def get(self, namespace: str, bucket: str, obj: str) -> bytes:
        self.calls.append(("get", namespace, bucket, obj))
        assert self.archive is not None
        return self.archive


class FakeLoadBalancer:
    """Records every call; work requests walk through a scripted state list.

    The last scripted state repeats once the list is exhausted.
    """

    def __init__(self, snapshot: LoadBalancerSnapshot, *, certificate_states: list[str] | None = None,
                 listener_states: dict[str, list[str]] | None = None,
                 rejected_listeners: tuple[str, ...] = ()):
        self.snapshot = snapshot
        self.certificate_states = certificate_states or ["ACCEPTED", "SUCCEEDED"]
        self.listener_states = listener_states or {}
        self.rejected_listeners = rejected_listeners
        self.calls: list[tuple] = []
        self.work_requests: dict[str, list[str]] = {}
        self.polls: dict[str, int] = {}

    @property
    def mutating_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in ("create_certificate", "update_listener")]

    def get_state(self, lb_id: str) -> LoadBalancerSnapshot:
        self.calls.append(("get_state", lb_id))
        return self.snapshot

    def create_certificate(self, lb_id: str, name: str, chain_pem: str, key_pem: str) -> str:
        self.calls.append(("create_certificate", lb_id, name))
        wr_id = f"wr-cert-{name}"
        self.work_requests[wr_id] = list(self.certificate_states)
        return wr_id

    def update_listener(self, lb_id: str, listener_name: str, details: dict) -> str:
        self.calls.append(("update_listener", lb_id, listener_name, details))
        if listener_name in self.rejected_listeners:
            raise RemoteAPIError("UpdateListener", 409, "Conflict")
        wr_id = f"wr-listener-{listener_name}"
        self.work_requests[wr_id] = list(self.listener_states.get(listener_name, ["IN_PROGRESS", "SUCCEEDED"]))
        return wr_id

    def get_work_request(self, work_request_id: str) -> WorkRequest:
        self.calls.append(("get_work_request", work_request_id))
        self.polls[work_request_id] = self.polls.get(work_request_id, 0) + 1
        states = self.work_requests[work_request_id]
        state = states.pop(0) if len(states) > 1 else states[0]
        detail = "InternalError: listener update failed" if state == "FAILED" else None
        return WorkRequest(work_request_id, state, error_detail=detail)


@pytest.fixture(scope="session")
def cert_and_key() -> tuple[str, str]:
    return make_cert()


@pytest.fixture()
def settings(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.chdir(tmp_path)  # keep a developer's .env out of the tests
    return Settings(
        lb_ocid=LB_OCID,
        os_ns="tenancyns",
        os_bn="certbot",
        archive_prefix="certbot",
        domain="example.com",
        region="us-phoenix-1",
        poll_interval=0,
        max_attempts=3,
    )
