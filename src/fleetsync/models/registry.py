"""Registry entries backing the autocomplete lists (drivers, plates, places)."""

from __future__ import annotations

from enum import StrEnum

from fleetsync.models._base import FleetBaseModel, RequiredText


class LocationType(StrEnum):
    ORIGIN = "origin"
    DESTINATION = "destination"


class Driver(FleetBaseModel):
    id: str = ""
    name: RequiredText
    phone: str | None = None


class VehicleEntry(FleetBaseModel):
    id: str = ""
    plate: RequiredText
    model: str | None = None


class Location(FleetBaseModel):
    id: str = ""
    name: RequiredText
    type: LocationType = LocationType.DESTINATION


class NamedEntry(FleetBaseModel):
    """Operations, industries and responsibles share this shape."""

    id: str = ""
    name: RequiredText


class MobileUser(FleetBaseModel):
    """Derived collection maintained outside this library; read-only here."""

    id: str
    name: str = ""
    driver_id: str | None = None
