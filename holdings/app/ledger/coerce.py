from __future__ import annotations

from typing import Any

from holdings_json import JSONParser

from .errors import InvalidResponseType


def _to_uint(raw: Any, what: str) -> int:
    parser = JSONParser()
    value = parser.to_uint(raw)
    if value is None:
        raise InvalidResponseType(
            f"{what} is not an unsigned integer: {type(raw).__name__}",
            details={"parse_error": parser.last_error},
        )
    return value


def coerce_identifier(raw: Any) -> int:
    return _to_uint(raw, "asset identifier")


def coerce_count(raw: Any) -> int:
    return _to_uint(raw, "balance")
