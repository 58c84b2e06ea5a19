from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

SCHEMA_VERSION = 1


def snapshot_to_result(snapshot: Any) -> Dict[str, Any]:
    """
    JSON-safe view of an OwnershipSnapshot.

    Identifiers are emitted as ascending decimal strings; u256 values do not
    survive a round trip through a JS number.
    """
    failures = [
        {"index": int(f.index), "reason": str(f.reason), "detail": str(f.detail or "")}
        for f in (getattr(snapshot, "failures", None) or ())
    ]
    return {
        "address": snapshot.address,
        "declared_count": int(snapshot.declared_count),
        "identifiers": [str(i) for i in sorted(snapshot.identifiers)],
        "failed_indices": [int(i) for i in snapshot.failed_indices],
        "failures": failures,
        "generation": int(snapshot.generation),
        "partial": bool(snapshot.failed_indices),
        "ledger_unavailable": bool(snapshot.ledger_unavailable),
    }


class HoldingsEnvelope:
    """
    Envelope for holdings routes: {schema_version, trace_id, ok, result, error}.

    Responses always go out as HTTP 200; the semantic status of a failure
    lives on error.status.
    """

    @staticmethod
    def body(
        trace_id: str,
        *,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "trace_id": trace_id if isinstance(trace_id, str) else "",
            "ok": error is None,
            "result": dict(result or {}) if error is None else None,
            "error": error,
        }

    @staticmethod
    def error(code: str, message: str, status: int, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {"code": code, "message": message, "status": int(status), "details": dict(details or {})}

    @classmethod
    def success(cls, *, result: Dict[str, Any], trace_id: str) -> JSONResponse:
        return JSONResponse(cls.body(trace_id, result=result), status_code=200)

    @classmethod
    def failure(
        cls,
        *,
        code: str,
        message: str,
        trace_id: str,
        status: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        return JSONResponse(cls.body(trace_id, error=cls.error(code, message, status, details)), status_code=200)
