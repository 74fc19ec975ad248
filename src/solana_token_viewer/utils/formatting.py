"""Fixed-layout text rendering of enriched token records."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from ..datalake.schemas import EnrichedTokenRecord
from .constants import LOG_SEPARATOR


def record_fields(record: EnrichedTokenRecord) -> List[Tuple[str, str]]:
    """Return the labeled fields shown for a record, in display order."""

    return [
        ("Token Account Pubkey", record.address),
        ("Mint", record.mint),
        ("Owner", record.owner),
        ("Amount", record.amount),
        ("Price", f"${record.price_usd:.2f}"),
        ("Market Cap", f"${record.market_cap_usd:.2f}"),
        ("24h Volume", f"${record.volume_24h_usd:.2f}"),
    ]


def format_record_block(record: EnrichedTokenRecord) -> str:
    lines = [f"{label}: {value}" for label, value in record_fields(record)]
    lines.append(LOG_SEPARATOR)
    return "\n".join(lines) + "\n"


def format_log_buffer(records: Iterable[EnrichedTokenRecord]) -> str:
    return "".join(format_record_block(record) for record in records)


__all__ = ["format_log_buffer", "format_record_block", "record_fields"]
