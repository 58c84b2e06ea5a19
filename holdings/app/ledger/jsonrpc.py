from __future__ import annotations

import itertools
import json
import logging
from typing import Any, Dict, List, Optional

import httpx  # type: ignore

from holdings_json import JSONParser, is_hex_digits, u256_calldata

from .. import config
from .errors import IndexOutOfRange, InvalidAddress, InvalidResponseType, LedgerUnavailable, QueryTimeout

log = logging.getLogger(__name__)

# Felts live in [0, P) with P just above 2**251; valid contract addresses stay below 2**251.
ADDRESS_LIMIT = 1 << 251

_EXPECTED_ENVELOPE: Dict[str, Any] = {
    "jsonrpc": str,
    "id": Any,
    "result": Any,
    "error": Any,
}

_OUT_OF_BOUNDS_MARKERS = ("out of bounds", "out_of_bounds", "index out of range", "invalid index")


def normalize_address(address: Any) -> str:
    """Canonical lowercase 0x felt for an owner address, or InvalidAddress."""
    if not isinstance(address, str):
        raise InvalidAddress(f"address must be a string, got {type(address).__name__}")
    t = address.strip()
    if t[:2].lower() != "0x" or not is_hex_digits(t[2:]):
        raise InvalidAddress(f"address is not a 0x hex felt: {address!r}")
    value = int(t[2:], 16)
    if value >= ADDRESS_LIMIT:
        raise InvalidAddress(f"address exceeds 2**251: {address!r}")
    return hex(value)


class JsonRpcLedgerClient:
    """
    LedgerClient over Starknet JSON-RPC `starknet_call`.

    Returns the raw `result` felt list of each call (a u256 is two felts);
    coercion to integers is left to the caller. When no `http_client` is
    given each call opens its own httpx.AsyncClient.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        *,
        balance_of_selector: str,
        token_of_owner_by_index_selector: str,
        block_id: str = "latest",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self.balance_of_selector = balance_of_selector
        self.token_of_owner_by_index_selector = token_of_owner_by_index_selector
        self.block_id = block_id
        self._http = http_client
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, http_client: Optional[httpx.AsyncClient] = None) -> "JsonRpcLedgerClient":
        return cls(
            config.LEDGER_RPC_URL,
            config.LEDGER_CONTRACT_ADDRESS,
            balance_of_selector=config.LEDGER_BALANCE_OF_SELECTOR,
            token_of_owner_by_index_selector=config.LEDGER_TOKEN_OF_OWNER_BY_INDEX_SELECTOR,
            block_id=config.LEDGER_BLOCK_ID,
            http_client=http_client,
        )

    async def count(self, address: str) -> Any:
        owner = normalize_address(address)
        return await self._call(self.balance_of_selector, [owner], method="balance_of")

    async def identifier_at(self, address: str, index: int) -> Any:
        owner = normalize_address(address)
        low, high = u256_calldata(int(index))
        try:
            return await self._call(self.token_of_owner_by_index_selector, [owner, low, high], method="token_of_owner_by_index")
        except LedgerUnavailable as ex:
            if _mentions_out_of_bounds(ex.details.get("rpc_error")):
                raise IndexOutOfRange(f"index {index} out of range for {owner}", details=ex.details) from ex
            raise

    async def _call(self, selector: str, calldata: List[str], *, method: str) -> List[Any]:
        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "starknet_call",
            "params": {
                "request": {
                    "contract_address": self.contract_address,
                    "entry_point_selector": selector,
                    "calldata": calldata,
                },
                "block_id": self.block_id,
            },
        }
        try:
            if self._http is not None:
                r = await self._http.post(self.rpc_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=None, follow_redirects=True) as client:
                    r = await client.post(self.rpc_url, json=payload)
        except httpx.TimeoutException as ex:  # type: ignore
            raise QueryTimeout(f"{method}: transport timeout", details={"error": str(ex)}) from ex
        except httpx.HTTPError as ex:  # type: ignore
            raise LedgerUnavailable(f"{method}: transport error", details={"error": str(ex)}) from ex

        status = int(r.status_code)
        if status < 200 or status >= 300:
            raise LedgerUnavailable(f"{method}: http {status}", details={"remote_status": status, "remote_body": r.text})

        parser = JSONParser()
        env = parser.parse(r.text or "", _EXPECTED_ENVELOPE)
        if not isinstance(env, dict) or not env:
            raise LedgerUnavailable(f"{method}: unreadable rpc body", details={"parse_error": parser.last_error})
        err = env.get("error")
        if err:
            log.debug("rpc error method=%s error=%s", method, err)
            raise LedgerUnavailable(f"{method}: rpc error", details={"rpc_error": err})
        result = env.get("result")
        if not isinstance(result, list):
            raise InvalidResponseType(f"{method}: result is {type(result).__name__}, expected felt list", details={"result": result})
        return result


def _mentions_out_of_bounds(rpc_error: Any) -> bool:
    if not rpc_error:
        return False
    text = json.dumps(rpc_error, default=str).lower()
    return any(marker in text for marker in _OUT_OF_BOUNDS_MARKERS)
