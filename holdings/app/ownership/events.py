from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class AddressChanged:
    address: Optional[str]


@dataclass(frozen=True)
class BalanceChanged:
    # Observed balance; None asks the resolver to re-read it from the ledger.
    count: Optional[int] = None


@dataclass(frozen=True)
class Disconnected:
    pass


OwnershipEvent = Union[AddressChanged, BalanceChanged, Disconnected]
