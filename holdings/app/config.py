from __future__ import annotations

import logging
import os

log = logging.getLogger(__name__)


# Ledger endpoint (Starknet JSON-RPC). Unset disables the HTTP service route.
LEDGER_RPC_URL = (os.getenv("LEDGER_RPC_URL", "") or "").strip()
LEDGER_CONTRACT_ADDRESS = (
    os.getenv("LEDGER_CONTRACT_ADDRESS", "") or ""
).strip() or "0x03c7b6d007691c8c5c2b76c6277197dc17257491f1d82df5609ed1163a2690d0"
# Entry-point selectors (hex felts) for balance_of / token_of_owner_by_index.
LEDGER_BALANCE_OF_SELECTOR = (os.getenv("LEDGER_BALANCE_OF_SELECTOR", "") or "").strip()
LEDGER_TOKEN_OF_OWNER_BY_INDEX_SELECTOR = (os.getenv("LEDGER_TOKEN_OF_OWNER_BY_INDEX_SELECTOR", "") or "").strip()
LEDGER_BLOCK_ID = (os.getenv("LEDGER_BLOCK_ID", "latest") or "latest").strip()

_timeout_raw = os.getenv("LEDGER_QUERY_TIMEOUT_S", "30")
try:
    LEDGER_QUERY_TIMEOUT_S = float(str(_timeout_raw).strip() or "30")
except Exception:
    log.warning("bad LEDGER_QUERY_TIMEOUT_S=%r; defaulting to 30", _timeout_raw, exc_info=True)
    LEDGER_QUERY_TIMEOUT_S = 30.0
if LEDGER_QUERY_TIMEOUT_S < 0:
    log.warning("negative LEDGER_QUERY_TIMEOUT_S=%r; disabling per-query timeout", _timeout_raw)
    LEDGER_QUERY_TIMEOUT_S = 0.0

# 0 = unbounded fan-out
_conc_raw = os.getenv("LEDGER_MAX_CONCURRENCY", "0")
try:
    LEDGER_MAX_CONCURRENCY = max(0, int(str(_conc_raw).strip() or "0"))
except Exception:
    log.warning("bad LEDGER_MAX_CONCURRENCY=%r; defaulting to 0", _conc_raw, exc_info=True)
    LEDGER_MAX_CONCURRENCY = 0

LOG_LEVEL = (os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper()
LOG_DIR = (os.getenv("LOG_DIR", "") or "").strip()
LOG_FILE = (os.getenv("LOG_FILE", "") or "").strip()


def ledger_rpc_configured() -> bool:
    return bool(LEDGER_RPC_URL and LEDGER_BALANCE_OF_SELECTOR and LEDGER_TOKEN_OF_OWNER_BY_INDEX_SELECTOR)
