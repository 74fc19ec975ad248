"""Plain-text rendering of enriched token records."""

from __future__ import annotations

import sys
from typing import Iterable, Optional, TextIO

from ..datalake.schemas import EnrichedTokenRecord
from ..utils.formatting import format_record_block

HEADING = "Tokens on Solana"


def render_console(records: Iterable[EnrichedTokenRecord], stream: Optional[TextIO] = None) -> int:
    """Write a heading and one labeled block per record; return the block count."""

    out = stream or sys.stdout
    out.write(f"{HEADING}\n\n")
    count = 0
    for record in records:
        out.write(format_record_block(record))
        count += 1
    if count == 0:
        out.write("No token accounts found.\n")
    out.flush()
    return count


__all__ = ["HEADING", "render_console"]
