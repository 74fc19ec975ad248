from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import pytest
import requests
from solders.pubkey import Pubkey

from solana_token_viewer.config.settings import AppConfig, LogSinkConfig, MarketDataConfig
from solana_token_viewer.datalake.schemas import MarketSnapshot, RawAccount
from solana_token_viewer.ingestion.market_data import MarketDataError
from solana_token_viewer.monitoring.metrics import METRICS


def _token_account_bytes(mint: Pubkey, owner: Pubkey, amount: int, state: int = 1) -> bytes:
    return (
        bytes(mint)
        + bytes(owner)
        + amount.to_bytes(8, "little")
        + bytes(36)  # delegate option + delegate
        + bytes([state])
        + bytes(56)  # is_native, delegated_amount, close_authority
    )


class FakeLedger:
    def __init__(self, accounts: Optional[Iterable[RawAccount]] = None, error: Optional[Exception] = None) -> None:
        self._accounts = list(accounts or [])
        self._error = error
        self.calls: List[str] = []

    def get_program_accounts(self, program_id: str) -> List[RawAccount]:
        self.calls.append(program_id)
        if self._error is not None:
            raise self._error
        return list(self._accounts)


class FakeMarketData:
    def __init__(self, snapshots: Dict[str, MarketSnapshot]) -> None:
        self._snapshots = snapshots
        self.calls: List[str] = []

    def lookup(self, mint_id: str) -> MarketSnapshot:
        self.calls.append(mint_id)
        if mint_id not in self._snapshots:
            raise MarketDataError(f"no data for {mint_id}")
        return self._snapshots[mint_id]


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, json_error: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._json_error = json_error

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        if self._json_error:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    def __init__(self, handler: Callable[[str], FakeResponse]) -> None:
        self._handler = handler
        self.urls: List[str] = []
        self.last_headers: Dict[str, str] = {}
        self.last_timeout = "unset"

    def get(self, url: str, headers=None, timeout=None) -> FakeResponse:
        self.urls.append(url)
        self.last_headers = dict(headers or {})
        self.last_timeout = timeout
        return self._handler(url)


@pytest.fixture(autouse=True)
def _reset_metrics():
    METRICS.reset()
    yield
    METRICS.reset()


@pytest.fixture
def token_account_bytes():
    return _token_account_bytes


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        log_sink=LogSinkConfig(path=tmp_path / "token_log.txt"),
        market_data=MarketDataConfig(memoize=False),
    )


@pytest.fixture
def fake_ledger_cls():
    return FakeLedger


@pytest.fixture
def fake_market_cls():
    return FakeMarketData


@pytest.fixture
def fake_session_cls():
    return FakeSession


@pytest.fixture
def fake_response_cls():
    return FakeResponse
