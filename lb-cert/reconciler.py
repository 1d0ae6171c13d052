# lb-cert/reconciler.py
import copy
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from errors import LbCertError, RemoteAPIError, RotationCancelled
from models import ListenerState, LoadBalancerSnapshot
from waiter import wait_for_work_request

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListenerOutcome:
    listener: str
    ok: bool
    work_request_id: str | None = None
    detail: str | None = None

    def as_dict(self) -> dict:
        return {"listener": self.listener, "ok": self.ok,
                "work_request_id": self.work_request_id, "detail": self.detail}


# fields of UpdateListenerDetails; the rest of the GET body is read-only
_UPDATE_FIELDS = (
    "defaultBackendSetName", "port", "protocol", "hostnameNames", "pathRouteSetName",
    "sslConfiguration", "connectionConfiguration", "routingPolicyName", "ruleSetNames",
)


def update_details(listener: ListenerState, certificate_name: str) -> dict:
    """UpdateListenerDetails built from the current listener with only the certificate swapped."""
    details = {k: copy.deepcopy(v) for k, v in listener.config.items() if k in _UPDATE_FIELDS}
    ssl = details["sslConfiguration"]
    # a listener references either a load balancer certificate by name or Certificates-service ids
    ssl.pop("certificateIds", None)
    ssl["certificateName"] = certificate_name
    return details


def dispatch(lb, lb_id: str, snapshot: LoadBalancerSnapshot, certificate_name: str,
             cancel: threading.Event | None = None) -> list[tuple[str, str | None, str | None]]:
    """
    Send one update per TLS listener without waiting for any of them.

    Returns ``(listener, work_request_id, error)`` triples in snapshot order;
    exactly one of the last two is set. A cancel before the first update
    raises ``RotationCancelled``; after that, the listeners not yet sent are
    recorded as cancelled so the caller still learns which ones changed.
    """
    sent = []
    for listener in snapshot.tls_listeners():
        if cancel is not None and cancel.is_set():
            if not sent:
                raise RotationCancelled(f"Cancelled before updating listener {listener.name}")
            sent.append((listener.name, None, "cancelled before update was sent"))
            continue
        try:
            wr_id = lb.update_listener(lb_id, listener.name, update_details(listener, certificate_name))
        except RemoteAPIError as e:
            log.error("listener %s update rejected: %s", listener.name, e)
            sent.append((listener.name, None, str(e)))
            continue
        log.info("listener %s -> %s (work request %s)", listener.name, certificate_name, wr_id)
        sent.append((listener.name, wr_id, None))
    return sent


def reconcile(lb, lb_id: str, snapshot: LoadBalancerSnapshot, certificate_name: str, *,
              poll_interval: float, max_attempts: int, max_workers: int = 4,
              cancel: threading.Event | None = None) -> list[ListenerOutcome]:
    """Point every TLS listener at ``certificate_name``; one outcome per listener."""
    cancel = cancel or threading.Event()
    sent = dispatch(lb, lb_id, snapshot, certificate_name, cancel)

    def _await(listener: str, wr_id: str) -> ListenerOutcome:
        try:
            res = wait_for_work_request(lb, wr_id, poll_interval=poll_interval,
                                        max_attempts=max_attempts, cancel=cancel)
        except RotationCancelled as e:
            # the update was sent; its outcome is unknown
            return ListenerOutcome(listener, False, wr_id, str(e))
        except LbCertError as e:
            return ListenerOutcome(listener, False, wr_id, str(e))
        if not res.ok:
            detail = res.detail if res.status == "failed" else f"timed out after {res.attempts} polls"
            return ListenerOutcome(listener, False, wr_id, detail)
        return ListenerOutcome(listener, True, wr_id)

    pending = [(name, wr_id) for name, wr_id, _ in sent if wr_id]
    results: dict[str, ListenerOutcome] = {}
    if pending:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(pending)))) as pool:
            futures = {name: pool.submit(_await, name, wr_id) for name, wr_id in pending}
            for name, fut in futures.items():
                results[name] = fut.result()

    outcomes = []
    for name, wr_id, err in sent:
        outcome = results[name] if wr_id else ListenerOutcome(name, False, None, err)
        log.info("listener %s: %s", name, "ok" if outcome.ok else f"failed ({outcome.detail})")
        outcomes.append(outcome)
    return outcomes
