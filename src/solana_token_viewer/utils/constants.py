"""Shared constants for the token viewer."""

from datetime import datetime, timezone

# Utility function to get timezone-aware UTC datetime
def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_MARKET_DATA_URL = "https://api.coingecko.com/api/v3"
DEFAULT_LOG_PATH = "token_log.txt"

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# SPL Token account layout: mint(32) owner(32) amount(8) delegate(4+32)
# state(1) is_native(4+8) delegated_amount(8) close_authority(4+32).
TOKEN_ACCOUNT_LEN = 165
MINT_OFFSET = 0

# AccountState enum of the token program.
ACCOUNT_STATE_UNINITIALIZED = 0
ACCOUNT_STATE_FROZEN = 2

LOG_SEPARATOR = "=" * 20

__all__ = [
    "utc_now",
    "DEFAULT_RPC_URL",
    "DEFAULT_MARKET_DATA_URL",
    "DEFAULT_LOG_PATH",
    "TOKEN_PROGRAM_ID",
    "TOKEN_ACCOUNT_LEN",
    "MINT_OFFSET",
    "ACCOUNT_STATE_UNINITIALIZED",
    "ACCOUNT_STATE_FROZEN",
    "LOG_SEPARATOR",
]
