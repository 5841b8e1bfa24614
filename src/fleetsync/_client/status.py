"""Daily-status page operations."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import Any

from fleetsync._constants import ID_FIELD, PALLETS_TOTAL_FIELD
from fleetsync._ids import new_token
from fleetsync.exceptions import FleetValidationError
from fleetsync.importer import build_status_records
from fleetsync.live import LiveCollection
from fleetsync.models import ImportRow, StatusRecord, parse_day, validate_draft
from fleetsync.views import with_pallet_total

_logger = logging.getLogger(__name__)


async def add_status_record(live: LiveCollection, day: date | str) -> dict[str, Any]:
    """Create a blank pending record for *day*."""
    day_str = parse_day(day)
    record = validate_draft(StatusRecord, {"id": f"{day_str}-{new_token()}", "date": day_str})
    return await live.create(record.id, record.to_document())


async def update_status_record(live: LiveCollection, record_id: str, field: str, value: Any) -> bool:
    """Patch one field; pallet changes carry the recomputed total in the same write."""
    if not field or field in (ID_FIELD, PALLETS_TOTAL_FIELD):
        raise FleetValidationError(f"Field {field!r} cannot be edited", field=field)
    current = live.get(record_id)
    if current is None:
        _logger.debug("Status record %s no longer present, update skipped", record_id)
        return False
    await live.patch(record_id, with_pallet_total(current, {field: value}))
    return True


async def remove_status_record(live: LiveCollection, record_id: str) -> None:
    await live.remove(record_id)


async def import_status_rows(
    live: LiveCollection,
    rows: Iterable[ImportRow],
    day: date | str,
) -> list[dict[str, Any]]:
    """Create one record per staged row, one write at a time.

    A failed write stops the import; records written before it remain.
    """
    written: list[dict[str, Any]] = []
    for record in build_status_records(rows, day):
        written.append(await live.create(record[ID_FIELD], record))
    _logger.debug("Imported %d status records for %s", len(written), parse_day(day))
    return written
