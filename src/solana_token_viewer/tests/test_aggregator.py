"""Tests for the token account aggregation pipeline."""

from __future__ import annotations

import time

import pytest
from solders.pubkey import Pubkey

from solana_token_viewer.config.settings import MarketDataConfig
from solana_token_viewer.datalake.schemas import MarketSnapshot, RawAccount
from solana_token_viewer.ingestion.aggregator import TokenAccountAggregator
from solana_token_viewer.ingestion.ledger import LedgerQueryError
from solana_token_viewer.ingestion.market_data import MarketDataClient, MarketDataError
from solana_token_viewer.monitoring.metrics import METRICS
from solana_token_viewer.utils.constants import TOKEN_PROGRAM_ID
from solana_token_viewer.utils.formatting import format_record_block


def _raw(address: str, mint: Pubkey, token_account_bytes, amount: int = 100) -> RawAccount:
    return RawAccount(address=address, payload=token_account_bytes(mint, Pubkey.new_unique(), amount))


def test_scenario_valid_and_invalid_accounts(
    app_config, token_account_bytes, fake_ledger_cls, fake_market_cls
) -> None:
    mint = Pubkey.new_unique()
    ledger = fake_ledger_cls([
        _raw("acc1", mint, token_account_bytes),
        RawAccount(address="acc2", payload=b"\xde\xad\xbe\xef"),
    ])
    market = fake_market_cls({str(mint): MarketSnapshot(2.50, 1000.0, 300.0)})
    aggregator = TokenAccountAggregator(app_config, ledger=ledger, market_data=market)

    result = aggregator.run()

    assert ledger.calls == [TOKEN_PROGRAM_ID]
    assert len(result.records) == 1
    record = result.records[0]
    assert record.address == "acc1"
    assert record.mint == str(mint)
    assert record.price_usd == 2.50
    assert record.market_cap_usd == 1000.0
    assert record.volume_24h_usd == 300.0
    assert result.decode_failures == 1
    assert result.lookup_failures == 0
    assert market.calls == [str(mint)]
    assert "acc2" not in result.log_buffer
    assert aggregator.log_buffer == format_record_block(record)


def test_scenario_lookup_failure_zero_fills(
    app_config, token_account_bytes, fake_ledger_cls, fake_session_cls, fake_response_cls
) -> None:
    mint = Pubkey.new_unique()
    ledger = fake_ledger_cls([_raw("acc1", mint, token_account_bytes)])
    market = MarketDataClient(
        MarketDataConfig(memoize=False),
        session=fake_session_cls(lambda url: fake_response_cls(status_code=500)),
    )

    result = TokenAccountAggregator(app_config, ledger=ledger, market_data=market).run()

    assert len(result.records) == 1
    record = result.records[0]
    assert record.has_market_data is False
    assert (record.price_usd, record.market_cap_usd, record.volume_24h_usd) == (0.0, 0.0, 0.0)
    assert "Price: $0.00" in result.log_buffer
    assert result.lookup_failures == 1
    assert METRICS.get("aggregator.lookup_failures") == 1


def test_scenario_empty_account_set(app_config, fake_ledger_cls, fake_market_cls) -> None:
    market = fake_market_cls({})
    aggregator = TokenAccountAggregator(app_config, ledger=fake_ledger_cls([]), market_data=market)

    result = aggregator.run()

    assert result.records == []
    assert result.log_buffer == ""
    assert result.accounts_received == 0
    assert market.calls == []


def test_ledger_failure_is_fatal(app_config, fake_ledger_cls, fake_market_cls) -> None:
    ledger = fake_ledger_cls(error=LedgerQueryError("rpc unavailable"))
    aggregator = TokenAccountAggregator(app_config, ledger=ledger, market_data=fake_market_cls({}))

    with pytest.raises(LedgerQueryError):
        aggregator.run()


def test_order_preserved_and_log_matches_records(
    app_config, token_account_bytes, fake_ledger_cls, fake_market_cls
) -> None:
    mints = [Pubkey.new_unique() for _ in range(4)]
    raws = [
        _raw("a0", mints[0], token_account_bytes, 1),
        RawAccount(address="bad1", payload=b""),
        _raw("a1", mints[1], token_account_bytes, 2),
        _raw("a2", mints[0], token_account_bytes, 3),
        RawAccount(address="bad2", payload=bytes(82)),
        _raw("a3", mints[3], token_account_bytes, 4),
    ]
    market = fake_market_cls({str(mints[0]): MarketSnapshot(1.0, 2.0, 3.0)})

    result = TokenAccountAggregator(
        app_config, ledger=fake_ledger_cls(raws), market_data=market
    ).run()

    assert [record.address for record in result.records] == ["a0", "a1", "a2", "a3"]
    assert [record.amount for record in result.records] == ["1", "2", "3", "4"]
    assert [record.has_market_data for record in result.records] == [True, False, True, False]
    assert result.log_buffer == "".join(format_record_block(record) for record in result.records)
    assert result.log_buffer.count("====================\n") == 4
    # No dedup by mint: a0 and a2 share a mint and both trigger a lookup.
    assert market.calls.count(str(mints[0])) == 2
    assert METRICS.get("aggregator.decode_failures") == 2


class SlowMarketData:
    """Finishes later lookups first to shake out ordering bugs."""

    def __init__(self, delays: dict[str, float], failing: set[str]) -> None:
        self._delays = delays
        self._failing = failing

    def lookup(self, mint_id: str) -> MarketSnapshot:
        time.sleep(self._delays[mint_id])
        if mint_id in self._failing:
            raise MarketDataError("boom")
        return MarketSnapshot(price_usd=self._delays[mint_id], market_cap_usd=1.0, volume_24h_usd=1.0)


def test_concurrent_lookups_preserve_order(app_config, token_account_bytes, fake_ledger_cls) -> None:
    mints = [Pubkey.new_unique() for _ in range(5)]
    raws = [_raw(f"acc{index}", mint, token_account_bytes, index) for index, mint in enumerate(mints)]
    delays = {str(mint): 0.05 - index * 0.01 for index, mint in enumerate(mints)}
    market = SlowMarketData(delays, failing={str(mints[2])})
    config = app_config.model_copy(update={"market_data": MarketDataConfig(max_workers=4)})

    result = TokenAccountAggregator(config, ledger=fake_ledger_cls(raws), market_data=market).run()

    assert [record.address for record in result.records] == [f"acc{index}" for index in range(5)]
    assert result.records[2].has_market_data is False
    assert all(record.has_market_data for index, record in enumerate(result.records) if index != 2)
    assert result.records[0].price_usd == pytest.approx(0.05)
