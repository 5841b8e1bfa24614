"""Typed document models for fleet collections."""

from fleetsync.models._base import FleetBaseModel, parse_day, validate_draft
from fleetsync.models.registry import Driver, Location, LocationType, MobileUser, NamedEntry, VehicleEntry
from fleetsync.models.schedule import Destination, Schedule, ScheduledVehicle, VehicleStatus
from fleetsync.models.status import ImportRow, OperationStatus, StatusRecord

__all__ = [
    "Destination",
    "Driver",
    "FleetBaseModel",
    "ImportRow",
    "Location",
    "LocationType",
    "MobileUser",
    "NamedEntry",
    "OperationStatus",
    "Schedule",
    "ScheduledVehicle",
    "StatusRecord",
    "VehicleEntry",
    "VehicleStatus",
    "parse_day",
    "validate_draft",
]
