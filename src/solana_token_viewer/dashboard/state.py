"""Read-only state shared by the dashboard endpoints."""

from __future__ import annotations

from typing import Dict, List, Optional

from ..config.settings import AppConfig
from ..datalake.schemas import AggregationResult, EnrichedTokenRecord
from ..monitoring.metrics import METRICS, MetricsRegistry
from .utils import to_serializable


class DashboardState:
    """Holds the finished output of a pipeline run for display."""

    def __init__(
        self,
        *,
        config: AppConfig,
        result: Optional[AggregationResult] = None,
        metrics: MetricsRegistry = METRICS,
    ) -> None:
        self.config = config
        self.result = result or AggregationResult()
        self.metrics = metrics

    @property
    def records(self) -> List[EnrichedTokenRecord]:
        return self.result.records

    def tokens(self) -> List[Dict[str, object]]:
        return [record.to_dict() for record in self.result.records]

    def summary(self) -> Dict[str, object]:
        result = self.result
        return {
            "program_id": self.config.rpc.program_id,
            "records": len(result.records),
            "accounts_received": result.accounts_received,
            "decode_failures": result.decode_failures,
            "lookup_failures": result.lookup_failures,
            "started_at": to_serializable(result.started_at),
            "finished_at": to_serializable(result.finished_at),
            "duration_seconds": result.duration_seconds,
        }


__all__ = ["DashboardState"]
