from __future__ import annotations

from .enumerator import IndexEnumerator
from .events import AddressChanged, BalanceChanged, Disconnected, OwnershipEvent
from .resolver import OwnershipResolver

__all__ = [
    "IndexEnumerator",
    "OwnershipResolver",
    "AddressChanged",
    "BalanceChanged",
    "Disconnected",
    "OwnershipEvent",
]
