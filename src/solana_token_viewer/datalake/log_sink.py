"""Append-only text log of enriched token records."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from ..config.settings import LogSinkConfig, get_app_config
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS


class LogSinkError(RuntimeError):
    """Raised when the token log cannot be opened or written."""


class TextLogSink:
    """Appends run output to a flat text file, creating it when absent."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        *,
        config: Optional[LogSinkConfig] = None,
    ) -> None:
        if path is None:
            path = (config or get_app_config().log_sink).path
        self.path = Path(path)
        self._logger = get_logger(__name__)

    def append(self, text: str) -> None:
        """Write ``text`` in a single append. The file is never truncated."""

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(text)
        except OSError as exc:
            raise LogSinkError(f"Unable to append to token log {self.path}: {exc}") from exc
        METRICS.increment("log_sink.bytes_written", len(text.encode("utf-8")))
        self._logger.info("Appended %d characters to %s", len(text), self.path)


__all__ = ["LogSinkError", "TextLogSink"]
