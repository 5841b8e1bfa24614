"""Dashboard aggregates over schedules and daily-status records."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from fleetsync._constants import DESTINATIONS_FIELD, ID_FIELD, VEHICLES_FIELD
from fleetsync.models.schedule import VehicleStatus
from fleetsync.models.status import OperationStatus


@dataclass(frozen=True)
class VehicleStats:
    programmed: int = 0
    in_transit: int = 0
    completed: int = 0


@dataclass(frozen=True)
class OperationStats:
    pending: int = 0
    completed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.completed


@dataclass(frozen=True)
class VehicleInTransit:
    id: str
    plate: str
    driver: str
    origin: str
    schedule_id: str
    schedule_name: str
    destinations: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TransportOption:
    """Autocomplete option for assigning a transport id to a vehicle."""

    id: str
    label: str
    value: str


def _vehicles(schedule: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    vehicles = schedule.get(VEHICLES_FIELD) or []
    return [v for v in vehicles if isinstance(v, Mapping)]


def vehicle_stats(schedules: Iterable[Mapping[str, Any]]) -> VehicleStats:
    statuses = [vehicle.get("status") for schedule in schedules for vehicle in _vehicles(schedule)]
    return VehicleStats(
        programmed=len(statuses),
        in_transit=sum(1 for s in statuses if s == VehicleStatus.IN_TRANSIT),
        completed=sum(1 for s in statuses if s == VehicleStatus.COMPLETED),
    )


def operation_stats(records: Iterable[Mapping[str, Any]]) -> OperationStats:
    statuses = [record.get("status") for record in records]
    return OperationStats(
        pending=sum(1 for s in statuses if s == OperationStatus.PENDING),
        completed=sum(1 for s in statuses if s == OperationStatus.COMPLETED),
    )


def vehicles_in_transit(schedules: Iterable[Mapping[str, Any]]) -> list[VehicleInTransit]:
    result: list[VehicleInTransit] = []
    for schedule in schedules:
        for vehicle in _vehicles(schedule):
            if vehicle.get("status") != VehicleStatus.IN_TRANSIT:
                continue
            destinations = vehicle.get(DESTINATIONS_FIELD) or []
            result.append(
                VehicleInTransit(
                    id=str(vehicle.get(ID_FIELD, "")),
                    plate=str(vehicle.get("plate", "")),
                    driver=str(vehicle.get("driver", "")),
                    origin=str(vehicle.get("origin", "")),
                    schedule_id=str(schedule.get(ID_FIELD, "")),
                    schedule_name=str(schedule.get("name", "")),
                    destinations=tuple(str(d.get("name", "")) for d in destinations if isinstance(d, Mapping)),
                )
            )
    return result


def available_transport_refs(
    status_records: Iterable[Mapping[str, Any]],
    schedules: Iterable[Mapping[str, Any]],
    current: Sequence[str] = (),
) -> list[TransportOption]:
    """Transport ids of the day not yet taken by any vehicle, plus *current*'s own."""
    taken = {
        ref
        for schedule in schedules
        for vehicle in _vehicles(schedule)
        for ref in (vehicle.get("transportRefs") or [])
    }
    own = set(current)
    options: list[TransportOption] = []
    for record in status_records:
        ref = record.get("transporteSAP")
        if not ref or (ref in taken and ref not in own):
            continue
        options.append(
            TransportOption(
                id=str(record.get(ID_FIELD, "")),
                label=f"{ref} - {record.get('rotas', '')}",
                value=str(ref),
            )
        )
    return options
