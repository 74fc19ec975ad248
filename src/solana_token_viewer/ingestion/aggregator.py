"""Aggregation pipeline joining on-chain token accounts with market data."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from ..config.settings import AppConfig, get_app_config
from ..datalake.schemas import (
    AggregationResult,
    DecodedTokenAccount,
    EnrichedTokenRecord,
    MarketSnapshot,
    RawAccount,
)
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS, MetricsRegistry
from ..utils.constants import utc_now
from ..utils.formatting import format_record_block
from .decoder import DecodeError, decode_token_account
from .ledger import SolanaLedgerClient
from .market_data import MarketDataClient, MarketDataError


class TokenAccountAggregator:
    """Builds the ordered list of enriched token records for one program.

    A failure to fetch the account set is fatal and propagates. Accounts that
    fail to decode are skipped; failed market lookups produce records without
    market data.
    """

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        ledger: Optional[SolanaLedgerClient] = None,
        market_data: Optional[MarketDataClient] = None,
        metrics: MetricsRegistry = METRICS,
    ) -> None:
        self._app_config = app_config or get_app_config()
        self._ledger = ledger or SolanaLedgerClient(self._app_config.rpc)
        self._market_data = market_data or MarketDataClient(self._app_config.market_data)
        self._metrics = metrics
        self._max_workers = max(1, int(self._app_config.market_data.max_workers))
        self._log_buffer = ""
        self._logger = get_logger(__name__)

    @property
    def log_buffer(self) -> str:
        """Text accumulated by the most recent run."""

        return self._log_buffer

    def run(self) -> AggregationResult:
        started_at = utc_now()
        program_id = self._app_config.rpc.program_id
        raw_accounts = self._ledger.get_program_accounts(program_id)
        self._metrics.increment("aggregator.accounts_received", len(raw_accounts))

        if self._max_workers > 1:
            records = self._enrich_concurrently(raw_accounts)
        else:
            records = self._enrich_sequentially(raw_accounts)

        self._log_buffer = "".join(format_record_block(record) for record in records)
        decode_failures = len(raw_accounts) - len(records)
        lookup_failures = sum(1 for record in records if not record.has_market_data)
        self._metrics.increment("aggregator.records_emitted", len(records))
        self._metrics.gauge("aggregator.last_run.records", len(records))

        result = AggregationResult(
            records=records,
            log_buffer=self._log_buffer,
            accounts_received=len(raw_accounts),
            decode_failures=decode_failures,
            lookup_failures=lookup_failures,
            started_at=started_at,
            finished_at=utc_now(),
        )
        self._logger.info(
            "Aggregated %d records from %d accounts (%d undecodable, %d without market data)",
            len(records),
            len(raw_accounts),
            decode_failures,
            lookup_failures,
        )
        return result

    def _enrich_sequentially(self, raw_accounts: Sequence[RawAccount]) -> List[EnrichedTokenRecord]:
        records: List[EnrichedTokenRecord] = []
        for raw in raw_accounts:
            account = self._decode(raw)
            if account is None:
                continue
            records.append(EnrichedTokenRecord(account=account, market=self._lookup(account)))
        return records

    def _enrich_concurrently(self, raw_accounts: Sequence[RawAccount]) -> List[EnrichedTokenRecord]:
        accounts = [account for account in map(self._decode, raw_accounts) if account is not None]
        if not accounts:
            return []
        # executor.map yields in submission order, keeping ledger order intact.
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            snapshots = list(executor.map(self._lookup, accounts))
        return [
            EnrichedTokenRecord(account=account, market=snapshot)
            for account, snapshot in zip(accounts, snapshots)
        ]

    def _decode(self, raw: RawAccount) -> Optional[DecodedTokenAccount]:
        try:
            return decode_token_account(raw)
        except DecodeError as exc:
            self._metrics.increment("aggregator.decode_failures")
            self._logger.debug("Skipping account %s: %s", raw.address, exc)
            return None

    def _lookup(self, account: DecodedTokenAccount) -> Optional[MarketSnapshot]:
        try:
            return self._market_data.lookup(account.mint)
        except MarketDataError as exc:
            self._metrics.increment("aggregator.lookup_failures")
            self._logger.debug("No market data for mint %s: %s", account.mint, exc)
            return None


__all__ = ["TokenAccountAggregator"]
