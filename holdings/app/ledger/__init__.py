from __future__ import annotations

from .errors import (
    LedgerError,
    LedgerUnavailable,
    InvalidAddress,
    IndexOutOfRange,
    InvalidResponseType,
    QueryTimeout,
)
from .types import (
    EnumerationResult,
    FailureReason,
    LedgerClient,
    OwnershipSnapshot,
    QueryFailure,
    QueryOutcome,
    QuerySuccess,
    ResolverState,
)
from .coerce import coerce_count, coerce_identifier

__all__ = [
    "LedgerError",
    "LedgerUnavailable",
    "InvalidAddress",
    "IndexOutOfRange",
    "InvalidResponseType",
    "QueryTimeout",
    "EnumerationResult",
    "FailureReason",
    "LedgerClient",
    "OwnershipSnapshot",
    "QueryFailure",
    "QueryOutcome",
    "QuerySuccess",
    "ResolverState",
    "coerce_count",
    "coerce_identifier",
]
