"""Entrypoint for the Solana token viewer."""

from __future__ import annotations

import argparse
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Sequence

from .config.settings import AppConfig, get_app_config
from .dashboard.console import render_console
from .datalake.log_sink import LogSinkError, TextLogSink
from .datalake.schemas import AggregationResult
from .ingestion.aggregator import TokenAccountAggregator
from .ingestion.ledger import LedgerQueryError, SolanaLedgerClient
from .ingestion.market_data import MarketDataClient
from .monitoring import bootstrap_observability
from .monitoring.logger import correlation_scope, get_logger
from .monitoring.metrics import METRICS, MetricsRegistry

logger = get_logger(__name__)


@contextmanager
def performance_monitor(operation_name: str, metrics: MetricsRegistry = METRICS):
    """Context manager for performance monitoring."""
    start_time = time.time()
    try:
        yield
    finally:
        duration = time.time() - start_time
        metrics.observe(f"viewer.{operation_name}.duration_seconds", duration)
        metrics.increment(f"viewer.{operation_name}.calls_total", 1.0)


def run(
    config: Optional[AppConfig] = None,
    *,
    ledger: Optional[SolanaLedgerClient] = None,
    market_data: Optional[MarketDataClient] = None,
    sink: Optional[TextLogSink] = None,
    metrics: MetricsRegistry = METRICS,
) -> AggregationResult:
    """Run the pipeline once and append its log buffer to the token log.

    Raises :class:`LedgerQueryError` or :class:`LogSinkError` on fatal failures.
    """

    app_config = config or get_app_config()
    aggregator = TokenAccountAggregator(
        app_config,
        ledger=ledger,
        market_data=market_data,
        metrics=metrics,
    )
    with performance_monitor("aggregation", metrics):
        result = aggregator.run()
    log_sink = sink or TextLogSink(config=app_config.log_sink)
    log_sink.append(result.log_buffer)
    return result


def apply_overrides(
    config: AppConfig,
    *,
    log_file: Optional[Path] = None,
    program_id: Optional[str] = None,
    workers: Optional[int] = None,
) -> AppConfig:
    """Return a copy of ``config`` with command line overrides applied."""

    updates = {}
    if log_file is not None:
        updates["log_sink"] = config.log_sink.model_copy(update={"path": Path(log_file)})
    if program_id:
        updates["rpc"] = config.rpc.model_copy(update={"program_id": program_id})
    if workers is not None:
        updates["market_data"] = config.market_data.model_copy(
            update={"max_workers": max(1, workers)}
        )
    return config.model_copy(update=updates) if updates else config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="List token accounts of a Solana token program with USD market data"
    )
    parser.add_argument("--log-file", type=Path, help="Append the token log to this file")
    parser.add_argument("--program-id", help="Token program whose accounts are listed")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Concurrent market data lookups (default: 1, sequential)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        default=False,
        help="Do not print the token list to stdout.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = apply_overrides(
        get_app_config(),
        log_file=args.log_file,
        program_id=args.program_id,
        workers=args.workers,
    )
    bootstrap_observability(config=config)
    with correlation_scope() as run_id:
        try:
            result = run(config)
        except (LedgerQueryError, LogSinkError) as exc:
            logger.error("Run %s aborted: %s", run_id, exc)
            print(f"error: {exc}", file=sys.stderr)
            return 1
    if not args.quiet:
        render_console(result.records)
    return 0


if __name__ == "__main__":
    sys.exit(main())
