from __future__ import annotations

import base64
import hashlib
import logging
import os
import sys
import time
from typing import Optional

from fastapi import FastAPI

from holdings_envelopes import HoldingsEnvelope, snapshot_to_result

from . import config
from .ledger import LedgerClient
from .ledger.jsonrpc import JsonRpcLedgerClient
from .ownership import OwnershipResolver


def _configure_logging() -> str:
    """
    Logging config for this service: stdout always, plus a rotating file
    when LOG_DIR or LOG_FILE is set. Returns the file path ("" if none).
    """
    _level = getattr(logging, config.LOG_LEVEL, logging.INFO)
    _handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    _log_file = config.LOG_FILE or (os.path.join(config.LOG_DIR, "holdings.log") if config.LOG_DIR else "")
    if _log_file:
        try:
            from logging.handlers import RotatingFileHandler

            os.makedirs(os.path.dirname(_log_file) or ".", exist_ok=True)
            _handlers.append(RotatingFileHandler(_log_file, maxBytes=50 * 1024 * 1024, backupCount=5, encoding="utf-8"))
        except Exception as _ex:
            # Never fail import over the file handler; stdout logging remains.
            sys.stderr.write(f"[holdings.logging] file logging disabled: {_ex}\n")
            _log_file = ""
    logging.captureWarnings(True)
    logging.basicConfig(
        level=_level,
        format="%(asctime)s.%(msecs)03d %(levelname)s %(process)d/%(threadName)s %(name)s %(pathname)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=_handlers,
        force=True,
    )
    logging.getLogger(__name__).info("holdings logging configured file=%r level=%s", _log_file, logging.getLevelName(_level))
    return _log_file


HOLDINGS_LOG_FILE = _configure_logging()
log = logging.getLogger(__name__)

app = FastAPI(title="Holdings Resolver", version="0.1.0")
# Tests and embedders may install any LedgerClient here.
app.state.ledger_client = None


def trace_id(seed: str = "") -> str:
    """Short url-safe id: ms timestamp + hash(seed + random)."""
    t = int(time.time() * 1000)
    h = hashlib.sha1((seed + str(t)).encode() + os.urandom(8)).digest()[:8]
    return base64.urlsafe_b64encode(t.to_bytes(6, "big") + h).decode().rstrip("=")


def _ledger_client() -> Optional[LedgerClient]:
    client = getattr(app.state, "ledger_client", None)
    if client is not None:
        return client
    if not config.ledger_rpc_configured():
        return None
    client = JsonRpcLedgerClient.from_config()
    app.state.ledger_client = client
    return client


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "ledger_configured": _ledger_client() is not None}


@app.get("/v1/holdings/{address}")
async def holdings(address: str):
    tid = trace_id(address)
    client = _ledger_client()
    if client is None:
        return HoldingsEnvelope.failure(
            code="missing_ledger_rpc_url",
            message="LEDGER_RPC_URL and entry-point selectors must be configured",
            trace_id=tid,
            status=503,
        )
    snap = await OwnershipResolver(client).resolve(address)
    if snap is None:
        # A fresh resolver runs a single pass; nothing can supersede it.
        return HoldingsEnvelope.failure(code="superseded", message="resolution superseded", trace_id=tid, status=409)
    result = snapshot_to_result(snap)
    if snap.ledger_unavailable:
        status = 400 if snap.error == "invalid_address" else 503
        log.info("holdings address=%s failed code=%s trace_id=%s", address, snap.error, tid)
        return HoldingsEnvelope.failure(
            code=str(snap.error or "ledger_unavailable"),
            message=f"could not read balance for {address}",
            trace_id=tid,
            status=status,
            details={"snapshot": result},
        )
    return HoldingsEnvelope.success(result=result, trace_id=tid)
