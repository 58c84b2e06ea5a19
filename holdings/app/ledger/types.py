from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Literal, Optional, Protocol, Tuple, Union


FailureReason = Literal[
    "ledger_unavailable",
    "invalid_address",
    "index_out_of_range",
    "invalid_response_type",
    "timeout",
]

ResolverState = Literal["idle", "resolving", "settled"]


class LedgerClient(Protocol):
    """
    Read-only ownership queries against one token contract.

    Both calls may return untyped payloads (ints, felt strings, u256 pairs);
    callers coerce them. Failures are raised as LedgerError subclasses.
    """

    async def count(self, address: str) -> Any:
        ...

    async def identifier_at(self, address: str, index: int) -> Any:
        ...


@dataclass(frozen=True)
class QuerySuccess:
    index: int
    identifier: int


@dataclass(frozen=True)
class QueryFailure:
    index: int
    reason: FailureReason
    detail: str = ""


QueryOutcome = Union[QuerySuccess, QueryFailure]


@dataclass(frozen=True)
class EnumerationResult:
    identifiers: FrozenSet[int] = frozenset()
    failures: Tuple[QueryFailure, ...] = ()

    @property
    def failed_indices(self) -> Tuple[int, ...]:
        return tuple(f.index for f in self.failures)


@dataclass(frozen=True)
class OwnershipSnapshot:
    """
    Point-in-time ownership record for one address and generation.

    Published snapshots are never mutated; a later pass produces a new one.
    `ledger_unavailable` marks a pass abandoned because the balance could not
    be read, with the reason code in `error`.
    """

    address: Optional[str]
    declared_count: int
    identifiers: FrozenSet[int]
    failed_indices: Tuple[int, ...]
    generation: int
    failures: Tuple[QueryFailure, ...] = field(default=(), compare=False)
    ledger_unavailable: bool = False
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.declared_count < 0:
            raise ValueError(f"declared_count must be >= 0, got {self.declared_count}")
        if len(self.identifiers) + len(self.failed_indices) > self.declared_count:
            raise ValueError(
                f"{len(self.identifiers)} identifiers + {len(self.failed_indices)} failures "
                f"exceed declared_count={self.declared_count}"
            )

    @classmethod
    def empty(cls, address: Optional[str] = None, generation: int = 0) -> "OwnershipSnapshot":
        return cls(address=address, declared_count=0, identifiers=frozenset(), failed_indices=(), generation=generation)

    @classmethod
    def unavailable(cls, address: Optional[str], generation: int, error: str) -> "OwnershipSnapshot":
        return cls(
            address=address,
            declared_count=0,
            identifiers=frozenset(),
            failed_indices=(),
            generation=generation,
            ledger_unavailable=True,
            error=error,
        )

    @classmethod
    def from_enumeration(cls, address: str, declared_count: int, result: EnumerationResult, generation: int) -> "OwnershipSnapshot":
        return cls(
            address=address,
            declared_count=declared_count,
            identifiers=result.identifiers,
            failed_indices=result.failed_indices,
            generation=generation,
            failures=result.failures,
        )

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_indices)
