"""Decoding of SPL Token account payloads."""

from __future__ import annotations

from solders.pubkey import Pubkey
from spl.token._layouts import ACCOUNT_LAYOUT

from ..datalake.schemas import DecodedTokenAccount, RawAccount
from ..utils.constants import (
    ACCOUNT_STATE_FROZEN,
    ACCOUNT_STATE_UNINITIALIZED,
    TOKEN_ACCOUNT_LEN,
)


class DecodeError(ValueError):
    """Raised when an account payload is not an initialized token account."""


def decode_token_account(raw: RawAccount) -> DecodedTokenAccount:
    """Decode ``raw`` into mint, owner, and raw amount.

    Mint accounts, multisigs, and extended token-2022 accounts have a
    different length and are rejected, as are uninitialized accounts.
    """

    payload = bytes(raw.payload)
    if len(payload) != TOKEN_ACCOUNT_LEN:
        raise DecodeError(
            f"account {raw.address} has {len(payload)} bytes, expected {TOKEN_ACCOUNT_LEN}"
        )
    parsed = ACCOUNT_LAYOUT.parse(payload)
    state = int(parsed.state)
    if state == ACCOUNT_STATE_UNINITIALIZED:
        raise DecodeError(f"account {raw.address} is not initialized")
    if state > ACCOUNT_STATE_FROZEN:
        raise DecodeError(f"account {raw.address} has unknown state {state}")
    return DecodedTokenAccount(
        address=raw.address,
        mint=str(Pubkey.from_bytes(bytes(parsed.mint))),
        owner=str(Pubkey.from_bytes(bytes(parsed.owner))),
        amount=str(int(parsed.amount)),
    )


__all__ = ["DecodeError", "decode_token_account"]
