from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set

from .. import config
from ..ledger import (
    LedgerClient,
    LedgerError,
    OwnershipSnapshot,
    ResolverState,
    coerce_count,
)
from .enumerator import IndexEnumerator
from .events import AddressChanged, BalanceChanged, Disconnected, OwnershipEvent

log = logging.getLogger(__name__)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class OwnershipResolver:
    """
    Resolve the identifiers owned by one observed address, pass by pass.

    Every pass mints a generation; a pass may only publish while its
    generation is still the latest one, so a slow pass for an old address
    can never overwrite a newer snapshot regardless of completion order.

    Subscribers get an asyncio.Queue receiving every published snapshot.
    `count_timeout_s` bounds each balance read (0 disables it).
    """

    def __init__(
        self,
        client: LedgerClient,
        enumerator: Optional[IndexEnumerator] = None,
        *,
        count_timeout_s: Optional[float] = None,
    ) -> None:
        self._client = client
        self._enumerator = enumerator if enumerator is not None else IndexEnumerator(client)
        self._count_timeout = config.LEDGER_QUERY_TIMEOUT_S if count_timeout_s is None else float(count_timeout_s)
        self._generation = 0
        self._address: Optional[str] = None
        self._state: ResolverState = "idle"
        self._snapshot = OwnershipSnapshot.empty()
        self._subscribers: List[asyncio.Queue] = []
        self._tasks: Set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def snapshot(self) -> OwnershipSnapshot:
        return self._snapshot

    # ---------------- subscriptions ----------------

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        if q in self._subscribers:
            self._subscribers.remove(q)

    def _publish(self, snap: OwnershipSnapshot) -> None:
        for q in list(self._subscribers):
            try:
                q.put_nowait(snap)
            except asyncio.QueueFull:
                log.warning("subscriber queue full; dropping snapshot generation=%d", snap.generation)

    # ---------------- transitions ----------------

    async def resolve(self, address: Optional[str]) -> Optional[OwnershipSnapshot]:
        """
        Run one pass for `address` (None clears to idle).

        Returns the published snapshot, or None when a newer generation was
        minted before this pass settled.
        """
        if address is None:
            return self.clear()
        g = self._mint(address)
        return await self._run_pass(address, g)

    async def refresh(self) -> Optional[OwnershipSnapshot]:
        """Re-read the balance and re-resolve only if it changed."""
        address = self._address
        if address is None or self._state != "settled":
            return None
        g = self._generation
        try:
            count = coerce_count(await self._read_count(address))
        except asyncio.TimeoutError:
            log.info("balance re-read timed out address=%s; keeping snapshot", address)
            return None
        except LedgerError as ex:
            log.info("balance re-read failed address=%s code=%s; keeping snapshot", address, ex.code)
            return None
        except Exception as ex:
            log.warning("balance re-read raised address=%s: %s", address, ex, exc_info=True)
            return None
        if g != self._generation:
            return None
        if not self._snapshot.ledger_unavailable and count == self._snapshot.declared_count:
            return None
        log.info("balance changed address=%s %d -> %d", address, self._snapshot.declared_count, count)
        g = self._mint(address)
        return await self._run_pass(address, g, count=count)

    def clear(self) -> OwnershipSnapshot:
        """Go idle: invalidate in-flight passes and publish the empty snapshot."""
        self._generation += 1
        self._address = None
        self._state = "idle"
        self._cancel_inflight()
        snap = OwnershipSnapshot.empty(generation=self._generation)
        self._snapshot = snap
        self._publish(snap)
        log.info("resolver cleared generation=%d", self._generation)
        return snap

    async def handle(self, event: OwnershipEvent) -> Optional[OwnershipSnapshot]:
        if isinstance(event, Disconnected):
            return self.clear()
        if isinstance(event, AddressChanged):
            if event.address is None:
                return self.clear()
            if event.address == self._address and self._state != "idle":
                return None
            return await self.resolve(event.address)
        if isinstance(event, BalanceChanged):
            if self._address is None:
                return None
            if event.count is None:
                return await self.refresh()
            if event.count == self._snapshot.declared_count and self._state == "settled" and not self._snapshot.ledger_unavailable:
                return None
            return await self.resolve(self._address)
        raise TypeError(f"unsupported ownership event: {type(event).__name__}")

    def submit(self, event: OwnershipEvent) -> asyncio.Task:
        """
        Handle `event` in a resolver-owned task.

        Owned tasks are cancelled only when a later generation is minted;
        events that change nothing leave the running pass alone.
        """
        task = asyncio.create_task(self.handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ---------------- internals ----------------

    def _mint(self, address: str) -> int:
        self._generation += 1
        self._address = address
        self._state = "resolving"
        self._cancel_inflight()
        log.debug("pass start address=%s generation=%d", address, self._generation)
        return self._generation

    def _cancel_inflight(self) -> None:
        # Cancellation only saves ledger calls; the generation check in
        # _settle is what keeps superseded passes from publishing.
        current = _current_task()
        for task in list(self._tasks):
            if task is not current and not task.done():
                task.cancel()

    async def _read_count(self, address: str):
        if self._count_timeout > 0:
            return await asyncio.wait_for(self._client.count(address), timeout=self._count_timeout)
        return await self._client.count(address)

    async def _run_pass(self, address: str, g: int, count: Optional[int] = None) -> Optional[OwnershipSnapshot]:
        if count is None:
            try:
                count = coerce_count(await self._read_count(address))
            except asyncio.TimeoutError:
                log.warning("balance read timed out address=%s generation=%d after %.3fs", address, g, self._count_timeout)
                return self._settle(g, OwnershipSnapshot.unavailable(address, g, "timeout"))
            except LedgerError as ex:
                log.warning("balance read failed address=%s generation=%d code=%s: %s", address, g, ex.code, ex.message)
                return self._settle(g, OwnershipSnapshot.unavailable(address, g, ex.code))
            except Exception as ex:
                log.warning("balance read raised address=%s generation=%d: %s", address, g, ex, exc_info=True)
                return self._settle(g, OwnershipSnapshot.unavailable(address, g, "ledger_unavailable"))

        if count == 0:
            return self._settle(g, OwnershipSnapshot.empty(address, g))
        if g != self._generation:
            log.info("skipping enumeration for superseded pass address=%s generation=%d", address, g)
            return None

        result = await self._enumerator.enumerate(address, count)
        return self._settle(g, OwnershipSnapshot.from_enumeration(address, count, result, g))

    def _settle(self, g: int, snap: OwnershipSnapshot) -> Optional[OwnershipSnapshot]:
        if g != self._generation:
            log.info(
                "discarding stale snapshot address=%s generation=%d current=%d",
                snap.address, g, self._generation,
            )
            return None
        self._snapshot = snap
        self._state = "settled"
        self._publish(snap)
        log.info(
            "published address=%s generation=%d declared=%d found=%d failed=%s%s",
            snap.address, g, snap.declared_count, len(snap.identifiers), list(snap.failed_indices),
            " ledger_unavailable=" + str(snap.error) if snap.ledger_unavailable else "",
        )
        return snap
