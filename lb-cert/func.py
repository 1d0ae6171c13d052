# lb-cert/func.py
"""
OCI Functions entry point.

The function image starts the fdk with this module's ``handler``
(``fdk /function/func.py handler``). Settings come from the function's
configuration, which OCI exposes as environment variables, and the
resource principal signs every call. The optional JSON body is
``{"dry_run": true}``; the response body is the rotation result.
"""
import io
import json
import logging

from fdk import response
from pydantic import ValidationError

from config import Settings, setup_logging
from errors import LbCertError, PartialReconciliationError, http_status
from models import RotateInput
from orchestrator import build

log = logging.getLogger(__name__)


def invoke(body: bytes) -> tuple[int, dict]:
    """Run one rotation for a raw request body; returns (status, JSON document)."""
    try:
        inp = RotateInput.model_validate_json(body) if body.strip() else RotateInput()
    except ValidationError as e:
        return 400, {"detail": f"invalid request body: {e}"}

    try:
        settings = Settings.load()
    except ValidationError as e:
        log.error("invalid function configuration: %s", e)
        return 500, {"detail": "invalid function configuration"}
    setup_logging(settings)

    try:
        return 200, build(settings).rotate(dry_run=inp.dry_run)
    except PartialReconciliationError as e:
        log.error("%s", e)
        return 502, e.as_dict()
    except LbCertError as e:
        log.error("%s", e)
        return http_status(e), {"detail": str(e)}
    except ValueError as e:
        log.error("%s", e)
        return 500, {"detail": str(e)}


def handler(ctx, data: io.BytesIO = None):
    status, doc = invoke(data.getvalue() if data is not None else b"")
    return response.Response(
        ctx,
        response_data=json.dumps(doc),
        headers={"Content-Type": "application/json"},
        status_code=status,
    )
