from __future__ import annotations

# Shared JSON utilities for the holdings packages.
# Exposes the JSONParser used to decode ledger RPC bodies and felts.

from .json_parser import JSONParser, U128_LIMIT, is_decimal_digits, is_hex_digits, u256_calldata  # re-export for convenience

__all__ = ["JSONParser", "U128_LIMIT", "is_decimal_digits", "is_hex_digits", "u256_calldata"]
