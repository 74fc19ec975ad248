from __future__ import annotations

from pathlib import Path

import pytest

from solana_token_viewer.config.settings import LogSinkConfig
from solana_token_viewer.datalake.log_sink import LogSinkError, TextLogSink


def test_append_creates_and_never_truncates(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "token_log.txt"
    sink = TextLogSink(path)

    sink.append("first\n")
    sink.append("second\n")

    assert path.read_text(encoding="utf-8") == "first\nsecond\n"


def test_empty_append_still_creates_file(tmp_path: Path) -> None:
    path = tmp_path / "token_log.txt"
    TextLogSink(config=LogSinkConfig(path=path)).append("")
    assert path.exists()
    assert path.read_text(encoding="utf-8") == ""


def test_existing_content_is_kept(tmp_path: Path) -> None:
    path = tmp_path / "token_log.txt"
    path.write_text("previous run\n", encoding="utf-8")
    TextLogSink(path).append("this run\n")
    assert path.read_text(encoding="utf-8") == "previous run\nthis run\n"


def test_unwritable_path_raises(tmp_path: Path) -> None:
    with pytest.raises(LogSinkError):
        TextLogSink(tmp_path).append("text")
