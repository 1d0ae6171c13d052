# lb-cert/orchestrator.py
import logging
import threading

import archive
from adapters.loadbalancer import LoadBalancer
from adapters.objectstorage import ObjectStorage
from adapters.signer import get_signer
from certs import ResolvedCertificate, resolve_certificate
from config import Settings
from errors import ArchiveNotFound, PartialReconciliationError, RotationCancelled
from planner import Install, Skip, plan
from reconciler import reconcile, update_details
from waiter import ensure_succeeded, wait_for_work_request

log = logging.getLogger(__name__)


class Orchestrator:
    def __init__(self, store: ObjectStorage, lb: LoadBalancer, settings: Settings):
        self.store = store
        self.lb = lb
        self.settings = settings

    # ------------------ archive ------------------
    def fetch_archive(self) -> bytes:
        s = self.settings
        name = s.archive_name
        if not self.store.head(s.os_ns, s.os_bn, name):
            raise ArchiveNotFound(s.os_ns, s.os_bn, name)
        log.info("downloading certificate archive /n/%s/b/%s/o/%s", s.os_ns, s.os_bn, name)
        return self.store.get(s.os_ns, s.os_bn, name)

    def resolve_certificate(self) -> ResolvedCertificate:
        domain = self.settings.domain
        bundle = archive.resolve(self.fetch_archive(), domain)
        cert = resolve_certificate(bundle, domain)
        log.info("certificate for %s expires %s -> %s", domain, cert.not_after.strftime("%Y%m%d"), cert.name)
        return cert

    # ------------------ ROTATE ------------------
    def rotate(self, dry_run: bool = False, cancel: threading.Event | None = None) -> dict:
        """
        One rotation run: resolve → plan → create + wait → reconcile listeners.

        The run honors ``settings.deadline_seconds`` by setting ``cancel``
        from a timer; outstanding polls and dispatches stop at that point.
        """
        cancel = cancel or threading.Event()
        timer = threading.Timer(self.settings.deadline_seconds, cancel.set)
        timer.daemon = True
        timer.start()
        try:
            return self._rotate(dry_run, cancel)
        finally:
            timer.cancel()

    def _rotate(self, dry_run: bool, cancel: threading.Event) -> dict:
        s = self.settings
        cert = self.resolve_certificate()
        snapshot = self.lb.get_state(s.lb_ocid)
        decision = plan(snapshot, cert)

        result = {
            "domain": cert.domain,
            "certificate_name": decision.certificate_name,
            "not_after": cert.not_after.isoformat(),
            "archive": s.archive_name,
            "listeners": [],
        }

        if isinstance(decision, Skip):
            log.info("certificate %s already installed on %s; nothing to do", decision.certificate_name, s.lb_ocid)
            result["status"] = "skipped"
            return result

        if dry_run:
            result["status"] = "dry_run"
            result["listeners"] = [
                {"listener": l.name, "current_certificate_name": l.current_certificate_name,
                 "details": update_details(l, decision.certificate_name)}
                for l in snapshot.tls_listeners()
            ]
            return result

        self._install(decision, cancel)
        outcomes = reconcile(
            self.lb, s.lb_ocid, snapshot, decision.certificate_name,
            poll_interval=s.poll_interval, max_attempts=s.max_attempts,
            max_workers=s.max_parallel_listeners, cancel=cancel,
        )
        result["listeners"] = [o.as_dict() for o in outcomes]
        if any(not o.ok for o in outcomes):
            raise PartialReconciliationError(outcomes)
        result["status"] = "installed"
        return result

    def _install(self, decision: Install, cancel: threading.Event):
        s = self.settings
        if cancel.is_set():
            raise RotationCancelled("Cancelled before certificate creation")
        log.info("creating certificate %s on %s", decision.certificate_name, s.lb_ocid)
        wr_id = self.lb.create_certificate(s.lb_ocid, decision.certificate_name,
                                           decision.public_chain_pem, decision.private_key_pem)
        # listeners can only reference the certificate once it exists
        ensure_succeeded(wait_for_work_request(
            self.lb, wr_id, poll_interval=s.poll_interval, max_attempts=s.max_attempts, cancel=cancel,
        ))
        log.info("certificate %s created (work request %s)", decision.certificate_name, wr_id)


# ------------------ module-level helpers ------------------
def build(settings: Settings) -> Orchestrator:
    """Wire signer and REST adapters for ``settings``."""
    signer, region = get_signer(settings)
    if not region and not (settings.os_endpoint and settings.lb_endpoint):
        raise ValueError("No region configured (set LBCERT_FN_REGION or the signer's region)")
    timeout = settings.request_timeout
    store = (ObjectStorage(settings.os_endpoint, signer, timeout) if settings.os_endpoint
             else ObjectStorage.for_region(region, signer, timeout))
    lb = (LoadBalancer(settings.lb_endpoint, signer, timeout) if settings.lb_endpoint
          else LoadBalancer.for_region(region, signer, timeout))
    return Orchestrator(store, lb, settings)
