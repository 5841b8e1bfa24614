"""Schedule page operations.

Vehicles and destinations live inside their schedule document, so every
operation below except create/remove is a nested edit of the schedule
that rewrites its ``vehicles`` array.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from fleetsync import editor
from fleetsync._constants import DESTINATIONS_FIELD, ID_FIELD, VEHICLES_FIELD
from fleetsync._ids import new_document_id
from fleetsync.exceptions import FleetValidationError
from fleetsync.live import LiveCollection
from fleetsync.models import Destination, Schedule, ScheduledVehicle, VehicleStatus, validate_draft

DEFAULT_SCHEDULE_NAME = "PROGRAMAÇÃO DIÁRIA {n}"

_STATUS_CYCLE = (VehicleStatus.IN_TRANSIT.value, VehicleStatus.COMPLETED.value)


def _check_field(field: str) -> None:
    if not field or field == ID_FIELD:
        raise FleetValidationError(f"Field {field!r} cannot be edited", field=field)


async def add_schedule(
    live: LiveCollection,
    day: date | str,
    *,
    name: str | None = None,
) -> dict[str, Any]:
    """Create an empty schedule for *day*, numbered after the existing ones."""
    existing = len(live.records())
    schedule = validate_draft(
        Schedule,
        {
            "id": new_document_id(),
            "name": name or DEFAULT_SCHEDULE_NAME.format(n=existing + 1),
            "date": day,
            "vehicles": [],
        },
    )
    document = schedule.to_document()
    return await live.create(schedule.id, document)


async def rename_schedule(live: LiveCollection, schedule_id: str, name: str) -> None:
    text = (name or "").strip()
    if not text:
        raise FleetValidationError("Schedule name must be non-empty", field="name")
    await live.patch(schedule_id, {"name": text})


async def remove_schedule(live: LiveCollection, schedule_id: str) -> None:
    await live.remove(schedule_id)


async def add_vehicle(
    live: LiveCollection,
    schedule_id: str,
    draft: Mapping[str, Any] | None = None,
) -> dict[str, Any] | None:
    """Append a vehicle to a schedule; returns it, or ``None`` if the schedule is gone."""
    vehicle = validate_draft(
        ScheduledVehicle,
        {**(draft or {}), "id": new_document_id(), "status": VehicleStatus.IN_TRANSIT},
    ).to_document()
    written = await live.edit(
        schedule_id,
        lambda doc: editor.append_child(doc, (), VEHICLES_FIELD, vehicle),
    )
    return vehicle if written else None


async def remove_vehicle(live: LiveCollection, schedule_id: str, vehicle_id: str) -> bool:
    return await live.edit(
        schedule_id,
        lambda doc: editor.remove_child(doc, (), VEHICLES_FIELD, vehicle_id),
    )


async def update_vehicle(
    live: LiveCollection,
    schedule_id: str,
    vehicle_id: str,
    field: str,
    value: Any,
) -> bool:
    _check_field(field)
    return await live.edit(
        schedule_id,
        lambda doc: editor.set_field(doc, editor.vehicle_path(vehicle_id), field, value),
    )


async def toggle_vehicle_status(live: LiveCollection, schedule_id: str, vehicle_id: str) -> bool:
    return await live.edit(
        schedule_id,
        lambda doc: editor.toggle_field(doc, editor.vehicle_path(vehicle_id), "status", _STATUS_CYCLE),
    )


async def complete_vehicle(live: LiveCollection, schedule_id: str, vehicle_id: str) -> bool:
    return await live.edit(
        schedule_id,
        lambda doc: editor.set_field(
            doc, editor.vehicle_path(vehicle_id), "status", VehicleStatus.COMPLETED.value
        ),
    )


async def add_destination(
    live: LiveCollection,
    schedule_id: str,
    vehicle_id: str,
    draft: Mapping[str, Any] | None = None,
) -> dict[str, Any] | None:
    destination = validate_draft(Destination, {**(draft or {}), "id": new_document_id()}).to_document()
    written = await live.edit(
        schedule_id,
        lambda doc: editor.append_child(doc, editor.vehicle_path(vehicle_id), DESTINATIONS_FIELD, destination),
    )
    return destination if written else None


async def remove_destination(
    live: LiveCollection,
    schedule_id: str,
    vehicle_id: str,
    destination_id: str,
) -> bool:
    return await live.edit(
        schedule_id,
        lambda doc: editor.remove_child(doc, editor.vehicle_path(vehicle_id), DESTINATIONS_FIELD, destination_id),
    )


async def update_destination(
    live: LiveCollection,
    schedule_id: str,
    vehicle_id: str,
    destination_id: str,
    field: str,
    value: Any,
) -> bool:
    _check_field(field)
    return await live.edit(
        schedule_id,
        lambda doc: editor.set_field(doc, editor.destination_path(vehicle_id, destination_id), field, value),
    )
