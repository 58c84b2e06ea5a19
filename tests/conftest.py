from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import pytest

from holdings.app.ledger import IndexOutOfRange


class FakeLedger:
    """
    In-memory LedgerClient.

    holdings maps address -> raw responses per index; an exception instance
    in that list is raised for its index. counts overrides the balance
    (value or exception). gates hold every identifier_at call for an
    address until the event is set; hang lists (address, index) pairs that
    never answer; hang_count lists addresses whose balance never arrives.
    """

    def __init__(
        self,
        holdings: Dict[str, Sequence[Any]],
        *,
        counts: Optional[Dict[str, Any]] = None,
        hang: Optional[Set[Tuple[str, int]]] = None,
        hang_count: Optional[Set[str]] = None,
    ) -> None:
        self.holdings = {k: list(v) for k, v in holdings.items()}
        self.counts = dict(counts or {})
        self.hang = set(hang or ())
        self.hang_count = set(hang_count or ())
        self.gates: Dict[str, asyncio.Event] = {}
        self.count_calls: List[str] = []
        self.index_calls: List[Tuple[str, int]] = []
        self.active = 0
        self.max_active = 0

    def hold(self, address: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[address] = gate
        return gate

    async def count(self, address: str) -> Any:
        self.count_calls.append(address)
        if address in self.hang_count:
            await asyncio.Event().wait()
        await asyncio.sleep(0)
        value = self.counts.get(address, len(self.holdings.get(address, [])))
        if isinstance(value, BaseException):
            raise value
        return value

    async def identifier_at(self, address: str, index: int) -> Any:
        self.index_calls.append((address, index))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if (address, index) in self.hang:
                await asyncio.Event().wait()
            gate = self.gates.get(address)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
        finally:
            self.active -= 1
        items = self.holdings.get(address, [])
        if index >= len(items):
            raise IndexOutOfRange(f"index {index} >= {len(items)}")
        value = items[index]
        if isinstance(value, BaseException):
            raise value
        return value


@pytest.fixture
def make_ledger():
    return FakeLedger
