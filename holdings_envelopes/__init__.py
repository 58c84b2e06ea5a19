from __future__ import annotations

from .snapshot_envelope import SCHEMA_VERSION, HoldingsEnvelope, snapshot_to_result

__all__ = [
    "SCHEMA_VERSION",
    "HoldingsEnvelope",
    "snapshot_to_result",
]
