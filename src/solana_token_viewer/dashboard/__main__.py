"""Run the pipeline once and serve the result on the dashboard."""

from __future__ import annotations

import argparse
import sys

import uvicorn

from ..config.settings import get_app_config
from ..datalake.log_sink import LogSinkError
from ..ingestion.ledger import LedgerQueryError
from ..main import run
from ..monitoring import bootstrap_observability
from ..monitoring.logger import correlation_scope, get_logger
from ..monitoring.metrics import METRICS
from .app import create_dashboard_app
from .state import DashboardState


def main() -> int:
    parser = argparse.ArgumentParser(description="Serve the Solana token viewer dashboard")
    parser.add_argument("--host", help="Override dashboard host")
    parser.add_argument("--port", type=int, help="Override dashboard port")
    args = parser.parse_args()

    config = get_app_config()
    bootstrap_observability(config=config)
    logger = get_logger(__name__)
    with correlation_scope() as run_id:
        try:
            result = run(config)
        except (LedgerQueryError, LogSinkError) as exc:
            logger.error("Run %s aborted: %s", run_id, exc)
            print(f"error: {exc}", file=sys.stderr)
            return 1
    state = DashboardState(config=config, result=result, metrics=METRICS)
    app = create_dashboard_app(state)
    host = args.host or config.dashboard.host
    port = args.port or config.dashboard.port
    uvicorn.run(app, host=host, port=port, log_level=config.monitoring.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
