"""Registry page operations (drivers, vehicles, places and lookup lists)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fleetsync._constants import DRIVERS, ID_FIELD, INDUSTRIES, LOCATIONS, OPERATIONS, RESPONSIBLES, VEHICLES
from fleetsync._ids import new_document_id
from fleetsync.exceptions import FleetValidationError
from fleetsync.live import LiveCollection
from fleetsync.models import Driver, FleetBaseModel, Location, NamedEntry, VehicleEntry, validate_draft

REGISTRY_MODELS: dict[str, type[FleetBaseModel]] = {
    DRIVERS: Driver,
    VEHICLES: VehicleEntry,
    LOCATIONS: Location,
    OPERATIONS: NamedEntry,
    INDUSTRIES: NamedEntry,
    RESPONSIBLES: NamedEntry,
}


def registry_model(collection: str) -> type[FleetBaseModel]:
    model = REGISTRY_MODELS.get(collection)
    if model is None:
        raise FleetValidationError(f"{collection!r} is not a registry collection", field="collection")
    return model


def _supplied_keys(model: type[FleetBaseModel], draft: Mapping[str, Any]) -> set[str]:
    """Wire keys the caller actually set, whether given by field name or alias."""
    keys = {str(key) for key in draft}
    for name, info in model.model_fields.items():
        if name in keys and info.alias:
            keys.add(info.alias)
    return keys


async def save_registry_entry(live: LiveCollection, draft: Mapping[str, Any]) -> dict[str, Any]:
    """Validate *draft* and create it, or patch it when it already exists.

    Patches carry only the fields present in *draft*; model defaults never
    overwrite stored values.
    """
    model = registry_model(live.collection)
    doc_id = str(draft.get(ID_FIELD) or "").strip()
    existing = bool(doc_id) and live.get(doc_id) is not None
    if not doc_id:
        doc_id = new_document_id()
    document = validate_draft(model, {**draft, ID_FIELD: doc_id}).to_document()
    if existing:
        supplied = _supplied_keys(model, draft)
        fields = {key: value for key, value in document.items() if key != ID_FIELD and key in supplied}
        return await live.patch(doc_id, fields)
    return await live.create(doc_id, document)


async def remove_registry_entry(live: LiveCollection, entry_id: str) -> None:
    registry_model(live.collection)
    await live.remove(entry_id)
