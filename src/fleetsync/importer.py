"""Clipboard import of spreadsheet rows into ``daily-status``."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import Any

from fleetsync._ids import new_token
from fleetsync.models._base import parse_day
from fleetsync.models.status import ImportRow, StatusRecord

_logger = logging.getLogger(__name__)

MIN_COLUMNS = 4


def parse_pasted_rows(text: str) -> list[ImportRow]:
    """Parse tab-separated text copied from a spreadsheet.

    The first line is a header and is discarded. Lines with fewer than
    four columns are skipped silently.
    """
    lines = text.strip().splitlines()
    rows: list[ImportRow] = []
    for number, line in enumerate(lines[1:], start=2):
        columns = line.split("\t")
        if len(columns) < MIN_COLUMNS:
            _logger.debug("Skipping pasted line %d: %d columns", number, len(columns))
            continue
        rows.append(
            ImportRow(
                transport_ref=columns[0].strip(),
                route=columns[1].strip(),
                weight=columns[2].strip(),
                box_count=columns[3].strip(),
            )
        )
    return rows


def build_status_records(rows: Iterable[ImportRow], day: date | str) -> list[dict[str, Any]]:
    """Expand staged rows into complete daily-status documents for *day*."""
    day_str = parse_day(day)
    token = new_token()
    records: list[dict[str, Any]] = []
    for index, row in enumerate(rows):
        record = StatusRecord(
            id=f"{day_str}-{token}-{index}",
            date=day_str,
            transport_ref=row.transport_ref,
            rotas=row.route,
            peso=row.weight,
            caixas=row.box_count,
        )
        records.append(record.to_document())
    return records
