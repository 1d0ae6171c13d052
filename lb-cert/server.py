import logging
import threading
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from config import Settings, setup_logging
from errors import LbCertError, PartialReconciliationError, http_status
from models import RotateInput
from orchestrator import Orchestrator, build

app = FastAPI(title="OCI LB certificate rotation", version="0.1.0")
log = logging.getLogger(__name__)

orc: Optional[Orchestrator] = None
# one rotation at a time against the load balancer
_run_lock = threading.Lock()


@app.on_event("startup")
def _startup():
    global orc
    settings = Settings.load()
    setup_logging(settings)
    orc = build(settings)
    log.info("ready for %s on %s", settings.domain, settings.lb_ocid)


def _run(dry_run: bool):
    if orc is None:
        raise HTTPException(503, "not ready")
    with _run_lock:
        try:
            return orc.rotate(dry_run=dry_run)
        except PartialReconciliationError as e:
            return JSONResponse(status_code=502, content=e.as_dict())
        except LbCertError as e:
            raise HTTPException(http_status(e), str(e))


# ---------- Health ----------
@app.get("/readyz")
def readyz():
    if orc is None:
        raise HTTPException(503, "not ready")
    return {"ok": True}


# ---------- Rotation ----------
@app.post("/lbcert/rotate")
def rotate(inp: RotateInput):
    return _run(inp.dry_run)


@app.post("/lbcert/plan")
def plan():
    return _run(True)
