# lb-cert/waiter.py
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from errors import RemoteAPIError, RotationCancelled, WorkRequestFailed, WorkRequestTimedOut

log = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
FAILED = "failed"
TIMED_OUT = "timed_out"

_DONE_OK = {"SUCCEEDED"}
_DONE_FAILED = {"FAILED", "CANCELED"}


@dataclass(frozen=True)
class WaitResult:
    work_request_id: str
    status: str
    attempts: int
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCEEDED


def wait_for_work_request(lb, work_request_id: str, *, poll_interval: float, max_attempts: int,
                          cancel: threading.Event | None = None,
                          sleep: Callable[[float], bool] | None = None) -> WaitResult:
    """
    Poll a load balancer work request at a fixed interval until it settles.

    At most ``max_attempts`` polls are made, so the total wait is bounded by
    ``poll_interval * max_attempts``. ``sleep(seconds)`` returns True when the
    wait was interrupted; it defaults to ``cancel.wait`` so setting the
    cancel event wakes the poller immediately.
    """
    cancel = cancel or threading.Event()
    sleep = sleep or cancel.wait
    last_error = None
    for attempt in range(1, max_attempts + 1):
        if cancel.is_set():
            raise RotationCancelled(f"Cancelled while waiting for work request {work_request_id}")
        try:
            wr = lb.get_work_request(work_request_id)
        except RemoteAPIError as e:
            # polling errors are retried within the attempt budget
            log.warning("poll %d/%d of %s failed: %s", attempt, max_attempts, work_request_id, e)
            last_error = str(e)
        else:
            log.debug("work request %s is %s (poll %d/%d)", work_request_id, wr.state, attempt, max_attempts)
            if wr.state in _DONE_OK:
                return WaitResult(work_request_id, SUCCEEDED, attempt)
            if wr.state in _DONE_FAILED:
                return WaitResult(work_request_id, FAILED, attempt, wr.error_detail or wr.state)
            last_error = None
        if attempt < max_attempts and sleep(poll_interval):
            raise RotationCancelled(f"Cancelled while waiting for work request {work_request_id}")
    return WaitResult(work_request_id, TIMED_OUT, max_attempts, last_error)


def ensure_succeeded(result: WaitResult) -> WaitResult:
    if result.status == FAILED:
        raise WorkRequestFailed(result.work_request_id, result.detail)
    if result.status == TIMED_OUT:
        raise WorkRequestTimedOut(result.work_request_id, result.attempts)
    return result
