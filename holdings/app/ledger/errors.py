from __future__ import annotations

from typing import Any, Dict, Optional

from .types import FailureReason


class LedgerError(Exception):
    """Base class for ledger query failures; `code` is the stable reason."""

    code: FailureReason = "ledger_unavailable"

    def __init__(self, message: str = "", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details: Dict[str, Any] = dict(details or {})


class LedgerUnavailable(LedgerError):
    code: FailureReason = "ledger_unavailable"


class InvalidAddress(LedgerError):
    code: FailureReason = "invalid_address"


class IndexOutOfRange(LedgerError):
    code: FailureReason = "index_out_of_range"


class InvalidResponseType(LedgerError):
    code: FailureReason = "invalid_response_type"


class QueryTimeout(LedgerError):
    code: FailureReason = "timeout"
