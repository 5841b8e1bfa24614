"""Schedule aggregate: schedule -> vehicles -> destinations.

Vehicles and destinations exist only inside their schedule document.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from fleetsync.models._base import DayString, FleetBaseModel


class VehicleStatus(StrEnum):
    IN_TRANSIT = "Em Trânsito"
    COMPLETED = "Concluído"

    def toggled(self) -> VehicleStatus:
        if self is VehicleStatus.IN_TRANSIT:
            return VehicleStatus.COMPLETED
        return VehicleStatus.IN_TRANSIT


class Destination(FleetBaseModel):
    id: str
    name: str = ""
    time: str | None = ""
    observation: str | None = ""


class ScheduledVehicle(FleetBaseModel):
    """A vehicle assignment owned by exactly one schedule."""

    id: str
    plate: str = ""
    driver: str = ""
    origin: str = ""
    origin_time: str = ""
    destinations: list[Destination] = Field(default_factory=list)
    status: VehicleStatus = VehicleStatus.IN_TRANSIT
    transport_refs: list[str] = Field(
        default_factory=list,
        description="Soft references to daily-status transport ids (no integrity check).",
    )
    route: str | None = None
    weight: str | None = None


class Schedule(FleetBaseModel):
    """Aggregate root of the ``schedules`` collection."""

    id: str
    name: str
    date: DayString
    vehicles: list[ScheduledVehicle] = Field(default_factory=list)
