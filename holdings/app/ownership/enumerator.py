from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set

from .. import config
from ..ledger import (
    EnumerationResult,
    LedgerClient,
    LedgerError,
    QueryFailure,
    QueryOutcome,
    QuerySuccess,
    coerce_identifier,
)

log = logging.getLogger(__name__)


class IndexEnumerator:
    """
    Fan out one `identifier_at` query per index in [0, count) and reduce.

    All queries are scheduled together and joined wait-all: a failure at one
    index is recorded and never aborts the rest. One attempt per index, no
    retry. `query_timeout_s` of 0/None disables the per-query timeout;
    `max_concurrency` of 0/None leaves the fan-out unbounded.
    """

    def __init__(
        self,
        client: LedgerClient,
        *,
        query_timeout_s: Optional[float] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self._client = client
        self._timeout = config.LEDGER_QUERY_TIMEOUT_S if query_timeout_s is None else float(query_timeout_s)
        self._max_concurrency = config.LEDGER_MAX_CONCURRENCY if max_concurrency is None else int(max_concurrency)

    async def enumerate(self, address: str, count: int) -> EnumerationResult:
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        if count == 0:
            return EnumerationResult()

        sem = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency > 0 else None
        log.debug("enumerate address=%s count=%d max_concurrency=%d", address, count, self._max_concurrency)
        outcomes = await asyncio.gather(*(self._query(address, i, sem) for i in range(count)))
        return self._reduce(address, outcomes)

    async def _query(self, address: str, index: int, sem: Optional[asyncio.Semaphore]) -> QueryOutcome:
        try:
            if sem is not None:
                async with sem:
                    raw = await self._call(address, index)
            else:
                raw = await self._call(address, index)
        except asyncio.TimeoutError:
            log.warning("identifier_at timed out address=%s index=%d after %.3fs", address, index, self._timeout)
            return QueryFailure(index, "timeout", f"no response within {self._timeout}s")
        except LedgerError as ex:
            log.warning("identifier_at failed address=%s index=%d code=%s: %s", address, index, ex.code, ex.message)
            return QueryFailure(index, ex.code, ex.message)
        except Exception as ex:
            log.warning("identifier_at raised address=%s index=%d: %s", address, index, ex, exc_info=True)
            return QueryFailure(index, "ledger_unavailable", f"{type(ex).__name__}: {ex}")

        try:
            identifier = coerce_identifier(raw)
        except LedgerError as ex:
            log.warning("identifier_at returned %r address=%s index=%d", raw, address, index)
            return QueryFailure(index, ex.code, ex.message)
        return QuerySuccess(index, identifier)

    async def _call(self, address: str, index: int):
        if self._timeout > 0:
            return await asyncio.wait_for(self._client.identifier_at(address, index), timeout=self._timeout)
        return await self._client.identifier_at(address, index)

    def _reduce(self, address: str, outcomes: List[QueryOutcome]) -> EnumerationResult:
        identifiers: Set[int] = set()
        failures: List[QueryFailure] = []
        for outcome in sorted(outcomes, key=lambda o: o.index):
            if isinstance(outcome, QueryFailure):
                failures.append(outcome)
                continue
            if outcome.identifier in identifiers:
                log.warning("duplicate identifier %d at index=%d address=%s", outcome.identifier, outcome.index, address)
            identifiers.add(outcome.identifier)
        log.debug("enumerated address=%s found=%d failed=%d", address, len(identifiers), len(failures))
        return EnumerationResult(identifiers=frozenset(identifiers), failures=tuple(failures))
