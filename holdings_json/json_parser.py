from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, get_args, get_origin

logger = logging.getLogger(__name__)

# Starknet u256 values travel as two 128-bit limbs.
U128_LIMIT = 1 << 128

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_DECIMAL_DIGITS = frozenset("0123456789")


def is_hex_digits(text: str) -> bool:
    """ASCII hex digits only: no sign, underscore, or whitespace."""
    return bool(text) and all(c in _HEX_DIGITS for c in text)


def is_decimal_digits(text: str) -> bool:
    return bool(text) and all(c in _DECIMAL_DIGITS for c in text)


class JSONParser:
    """
    parse(source, expected_structure) -> coerced result

    Ordering:
    1) If source already dict/list: coerce it immediately.
    2) If source is str/bytes: json.loads it. On failure record the error and
       return the schema default (ledger bodies are machine-written; there is
       nothing to repair).
    3) Coerce to expected_structure without dropping extras. Missing keys get
       the schema default (None for Any).

    to_uint(value) is the strict side: ledger identifiers and balances are
    arbitrary-precision unsigned integers, so nothing lossy is accepted
    (no floats, no bools, no negative values).
    """

    def __init__(self) -> None:
        self.errors: List[str] = []
        self.last_error: Optional[str] = None

    # ---------------- public API ----------------

    def parse(self, source: Any, expected_structure: Any) -> Any:
        if isinstance(source, (dict, list)):
            return self._coerce_node_safe(source, expected_structure)
        if isinstance(source, (bytes, bytearray)):
            source = bytes(source).decode("utf-8", errors="replace")
        if isinstance(source, str):
            obj = self._try_json_loads(source)
            if obj is None:
                return self._default_for_schema(expected_structure)
            return self._coerce_node_safe(obj, expected_structure)
        self._err(f"parse:unsupported_source:{type(source).__name__}")
        return self._default_for_schema(expected_structure)

    def to_uint(self, value: Any) -> Optional[int]:
        """
        Exact unsigned integer from an untyped ledger value, or None.

        Accepts ints, decimal strings, 0x-prefixed hex felts, single-felt
        lists, and u256 pairs given as {"low", "high"} or [low, high].
        """
        # IMPORTANT: bool is a subclass of int; handle it first.
        if isinstance(value, bool):
            self._err("to_uint:bool")
            return None
        if isinstance(value, int):
            if value < 0:
                self._err(f"to_uint:negative:{value}")
                return None
            return value
        if isinstance(value, str):
            return self._felt_to_int(value)
        if isinstance(value, dict):
            if "low" in value and "high" in value:
                return self._u256_to_int(value.get("low"), value.get("high"))
            self._err(f"to_uint:dict_keys:{sorted(str(k) for k in value.keys())[:8]}")
            return None
        if isinstance(value, (list, tuple)):
            if len(value) == 1:
                return self.to_uint(value[0])
            if len(value) == 2:
                return self._u256_to_int(value[0], value[1])
            self._err(f"to_uint:sequence_len:{len(value)}")
            return None
        self._err(f"to_uint:unsupported:{type(value).__name__}")
        return None

    # ---------------- text ----------------

    def _try_json_loads(self, s: str) -> Optional[Any]:
        t = s.strip()
        if not t:
            self._err("json.loads:empty")
            return None
        try:
            return json.loads(t)
        except Exception as exc:
            self._err(f"json.loads:{type(exc).__name__}:{exc}")
            return None

    def _felt_to_int(self, text: str) -> Optional[int]:
        t = text.strip()
        if not t:
            self._err("to_uint:empty_string")
            return None
        if t[:2].lower() == "0x":
            if is_hex_digits(t[2:]):
                return int(t[2:], 16)
        elif is_decimal_digits(t):
            return int(t)
        self._err(f"to_uint:not_numeric:{t[:32]!r}")
        return None

    def _u256_to_int(self, low: Any, high: Any) -> Optional[int]:
        lo = self.to_uint(low)
        hi = self.to_uint(high)
        if lo is None or hi is None:
            return None
        if lo >= U128_LIMIT or hi >= U128_LIMIT:
            self._err("to_uint:u256_limb_overflow")
            return None
        return lo + (hi << 128)

    # ---------------- structure ----------------

    def _coerce_node_safe(self, raw: Any, expected_structure: Any) -> Any:
        try:
            coerced = self._coerce_node(raw, expected_structure)
        except Exception as exc:
            self._err(f"coerce_node:{type(exc).__name__}:{exc}")
            coerced = self._default_for_schema(expected_structure)
        return coerced

    def _coerce_node(self, data: Any, expected: Any) -> Any:
        origin = get_origin(expected)
        if origin is list:
            args = get_args(expected)
            return self._coerce_node(data, [args[0] if args else Any])

        if isinstance(expected, list):
            if not isinstance(data, list):
                return [] if data is None else [data]
            if not expected:
                return data
            return [self._coerce_node(item, expected[0]) for item in data]

        if isinstance(expected, dict):
            if not isinstance(data, dict):
                return {} if data is None else {"_raw": data}
            if not expected:
                return data
            out: Dict[str, Any] = dict(data)  # preserve extras
            for key, schema in expected.items():
                if key in data:
                    out[key] = self._coerce_node(data.get(key), schema)
                else:
                    out[key] = self._default_for_schema(schema)
            return out

        return self._coerce_scalar(data, expected)

    def _default_for_schema(self, schema: Any) -> Any:
        if isinstance(schema, dict):
            return {}
        if isinstance(schema, list) or get_origin(schema) is list:
            return []
        if schema is str:
            return ""
        if schema is bool:
            return False
        return None

    def _coerce_scalar(self, value: Any, schema: Any) -> Any:
        if schema is Any or schema is object or value is None:
            return value
        if schema is str:
            return value if isinstance(value, str) else str(value)
        if schema is int:
            # Exact or nothing; a JSON-RPC error code of "-32000" still counts.
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, str):
                t = value.strip()
                if is_decimal_digits(t[1:] if t[:1] == "-" else t):
                    return int(t)
            self._err(f"to_int:{type(value).__name__}")
            return None
        if schema is bool:
            return value if isinstance(value, bool) else bool(value)
        return value

    # ---------------- diagnostics ----------------

    def _err(self, msg: str) -> None:
        self.last_error = msg
        self.errors.append(msg)
        logger.debug("JSONParser error: %s", msg)


def u256_calldata(value: int) -> Tuple[str, str]:
    """Split an unsigned int into (low, high) hex felts for calldata."""
    if value < 0 or value >= (1 << 256):
        raise ValueError(f"u256 out of range: {value}")
    return hex(value & (U128_LIMIT - 1)), hex(value >> 128)
