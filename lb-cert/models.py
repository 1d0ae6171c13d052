# lb-cert/models.py
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class ListenerState:
    name: str
    has_tls: bool
    current_certificate_name: str | None = None
    # full listener document from GET /loadBalancers/{id}, base for updates
    config: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, doc: dict[str, Any]) -> "ListenerState":
        ssl = doc.get("sslConfiguration")
        return cls(
            name=doc["name"],
            has_tls=ssl is not None,
            current_certificate_name=(ssl or {}).get("certificateName"),
            config=doc,
        )


@dataclass(frozen=True)
class LoadBalancerSnapshot:
    certificates: frozenset[str]
    listeners: tuple[ListenerState, ...]

    @classmethod
    def from_api(cls, doc: dict[str, Any]) -> "LoadBalancerSnapshot":
        # certificates and listeners are both maps keyed by name
        certs = doc.get("certificates") or {}
        listeners = doc.get("listeners") or {}
        return cls(
            certificates=frozenset(certs.keys()),
            listeners=tuple(ListenerState.from_api({"name": name, **body})
                            for name, body in listeners.items()),
        )

    def tls_listeners(self) -> list[ListenerState]:
        return [l for l in self.listeners if l.has_tls]


@dataclass(frozen=True)
class WorkRequest:
    id: str
    state: str
    started_at: str | None = None
    finished_at: str | None = None
    error_detail: str | None = None

    @classmethod
    def from_api(cls, doc: dict[str, Any]) -> "WorkRequest":
        errors = doc.get("errorDetails") or []
        detail = "; ".join(
            f"{e.get('errorCode', 'UNKNOWN')}: {e.get('message', '')}".strip() for e in errors
        ) or None
        if detail is None and doc.get("lifecycleState") == "FAILED":
            detail = doc.get("message")
        return cls(
            id=doc["id"],
            state=doc.get("lifecycleState", "ACCEPTED"),
            started_at=doc.get("timeAccepted"),
            finished_at=doc.get("timeFinished"),
            error_detail=detail,
        )


class RotateInput(BaseModel):
    """Body of a rotation request (HTTP or function invoke)."""
    dry_run: bool = False
