"""Ledger query helpers for enumerating program-owned accounts."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict, List, Optional, Union

from solana.rpc.api import Client
from solana.rpc.types import MemcmpOpts
from solders.pubkey import Pubkey

from ..config.settings import RPCConfig, get_app_config
from ..datalake.schemas import RawAccount
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS
from ..utils.constants import MINT_OFFSET


class LedgerQueryError(RuntimeError):
    """Raised when the program account set cannot be obtained."""


class SolanaLedgerClient:
    """Fetches raw program accounts through Solana JSON-RPC."""

    def __init__(self, config: Optional[RPCConfig] = None, client: Optional[Client] = None) -> None:
        self._config = config or get_app_config().rpc
        self._endpoint = str(self._config.primary_url)
        self._client = client or Client(self._endpoint, timeout=self._config.request_timeout)
        self._logger = get_logger(__name__)

    def get_program_accounts(self, program_id: str) -> List[RawAccount]:
        """Return every account owned by ``program_id`` in RPC order."""

        try:
            program = Pubkey.from_string(program_id)
        except ValueError as exc:
            raise LedgerQueryError(f"Invalid program id {program_id!r}") from exc

        kwargs: Dict[str, Any] = {"encoding": "base64", "commitment": self._config.commitment}
        filters = self._build_filters()
        if filters:
            kwargs["filters"] = filters
        try:
            response = self._client.get_program_accounts(program, **kwargs)
        except Exception as exc:  # noqa: BLE001 - transport errors surface under several types
            METRICS.increment("ledger.failures")
            raise LedgerQueryError(
                f"getProgramAccounts failed on {self._endpoint}: {exc}"
            ) from exc

        entries = self._extract_entries(self._to_payload(response))
        accounts: List[RawAccount] = []
        for entry in entries:
            account = self._parse_entry(entry)
            if account is not None:
                accounts.append(account)
        METRICS.increment("ledger.accounts_fetched", len(accounts))
        self._logger.info("Fetched %d accounts for program %s", len(accounts), program_id)
        return accounts

    def _build_filters(self) -> List[Union[int, MemcmpOpts]]:
        filters: List[Union[int, MemcmpOpts]] = []
        if self._config.data_size_filter is not None:
            filters.append(self._config.data_size_filter)
        if self._config.mint_filter:
            filters.append(MemcmpOpts(offset=MINT_OFFSET, bytes=self._config.mint_filter))
        return filters

    def _to_payload(self, response: Any) -> Any:
        if isinstance(response, dict):
            return response
        if hasattr(response, "to_json"):
            raw = response.to_json()
            if isinstance(raw, str):
                try:
                    return json.loads(raw)
                except json.JSONDecodeError as exc:
                    raise LedgerQueryError("Unparseable getProgramAccounts response") from exc
            return raw
        raise LedgerQueryError(f"Unexpected getProgramAccounts response type {type(response).__name__}")

    def _extract_entries(self, payload: Any) -> List[Any]:
        if not isinstance(payload, dict):
            raise LedgerQueryError("getProgramAccounts response is not a JSON object")
        if payload.get("error"):
            METRICS.increment("ledger.failures")
            raise LedgerQueryError(f"getProgramAccounts returned an error: {payload['error']}")
        result = payload.get("result")
        if isinstance(result, dict) and "value" in result:
            result = result["value"]
        if not isinstance(result, list):
            raise LedgerQueryError("getProgramAccounts response has no account list")
        return result

    def _parse_entry(self, entry: Any) -> Optional[RawAccount]:
        if not isinstance(entry, dict) or not entry.get("pubkey"):
            self._logger.debug("Ignoring malformed account entry: %r", entry)
            return None
        account = entry.get("account")
        data = account.get("data") if isinstance(account, dict) else None
        return RawAccount(address=str(entry["pubkey"]), payload=self._decode_data(data))

    def _decode_data(self, data: Any) -> bytes:
        # Anything that is not base64 is passed on empty and rejected by the decoder.
        if isinstance(data, list) and data:
            encoded = data[0]
            encoding = data[1] if len(data) > 1 else "base64"
            if encoding == "base64" and isinstance(encoded, str):
                try:
                    return base64.b64decode(encoded, validate=True)
                except (binascii.Error, ValueError):
                    return b""
        return b""


__all__ = ["LedgerQueryError", "SolanaLedgerClient"]
