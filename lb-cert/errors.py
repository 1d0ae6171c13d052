# lb-cert/errors.py


class LbCertError(RuntimeError):
    """Base class for every failure a rotation run can report."""


class ArchiveNotFound(LbCertError):
    """The certbot archive has not been published to the bucket (yet)."""
    def __init__(self, namespace: str, bucket: str, object_name: str):
        super().__init__(f"Unable to find certbot archive: /n/{namespace}/b/{bucket}/o/{object_name}")
        self.namespace = namespace
        self.bucket = bucket
        self.object_name = object_name


class ArchiveFormatError(LbCertError):
    pass


class UnresolvedLinkError(LbCertError):
    """A live/ link points at archive content that is not in the bundle."""
    def __init__(self, domain: str, filename: str, target: str):
        super().__init__(f"live/{domain}/{filename} -> {target} has no matching archive content")
        self.domain = domain
        self.filename = filename
        self.target = target


class InvalidPEMError(LbCertError):
    pass


class MissingMaterialError(LbCertError):
    def __init__(self, domain: str, filename: str):
        super().__init__(f"Unable to find {domain}/{filename}.pem in archive")
        self.domain = domain
        self.filename = filename


class RemoteAPIError(LbCertError):
    """A control-plane or object-store call failed."""
    def __init__(self, operation: str, status_code: int | None, detail: str):
        msg = f"{operation} failed"
        if status_code is not None:
            msg += f" ({status_code})"
        super().__init__(f"{msg}: {detail}")
        self.operation = operation
        self.status_code = status_code
        self.detail = detail


class WorkRequestFailed(LbCertError):
    def __init__(self, work_request_id: str, detail: str | None):
        super().__init__(f"Work request {work_request_id} failed: {detail or 'no error details'}")
        self.work_request_id = work_request_id
        self.detail = detail


class WorkRequestTimedOut(LbCertError):
    def __init__(self, work_request_id: str, attempts: int):
        super().__init__(f"Work request {work_request_id} still pending after {attempts} polls")
        self.work_request_id = work_request_id
        self.attempts = attempts


class PartialReconciliationError(LbCertError):
    """One or more listener updates failed; every listener was still attempted."""
    def __init__(self, outcomes: list):
        self.outcomes = list(outcomes)
        self.succeeded = [o.listener for o in self.outcomes if o.ok]
        self.failed = [o.listener for o in self.outcomes if not o.ok]
        super().__init__(
            f"Listener reconciliation failed for {', '.join(self.failed)}"
            f" (succeeded: {', '.join(self.succeeded) or 'none'})"
        )

    def as_dict(self) -> dict:
        return {
            "detail": str(self),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "listeners": [o.as_dict() for o in self.outcomes],
        }


class RotationCancelled(LbCertError):
    pass


_HTTP_STATUS = [
    (ArchiveNotFound, 404),
    ((ArchiveFormatError, UnresolvedLinkError, InvalidPEMError, MissingMaterialError), 422),
    (RotationCancelled, 504),
]


def http_status(e: LbCertError) -> int:
    """Status code a rotation failure is reported with; 502 unless listed above."""
    for kinds, status in _HTTP_STATUS:
        if isinstance(e, kinds):
            return status
    return 502
