"""Pure nested-path edits over containment trees.

A path walks from a top-level document through child lists, matching
children by id, e.g. ``schedule -> vehicles[v1] -> destinations[d3]``::

    path = destination_path("v1", "d3")
    updated = set_field(schedule, path, "time", "08:30")

Every operation deep-copies the input and returns a fresh top-level
document; the input is never mutated. When a path segment names a child
that no longer exists (removed by a concurrent edit) the operation is a
no-op and the *input object itself* is returned, so callers can detect
``updated is document`` and skip the write.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from fleetsync._constants import DESTINATIONS_FIELD, ID_FIELD, VEHICLES_FIELD
from fleetsync.exceptions import FleetStaleReferenceError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChildRef:
    """One step into a child list, selecting the child whose ``id`` matches."""

    list_field: str
    child_id: str


Path = Sequence[ChildRef]
Updater = Callable[[dict[str, Any]], Mapping[str, Any] | None]


def vehicle_path(vehicle_id: str) -> tuple[ChildRef, ...]:
    return (ChildRef(VEHICLES_FIELD, vehicle_id),)


def destination_path(vehicle_id: str, destination_id: str) -> tuple[ChildRef, ...]:
    return (ChildRef(VEHICLES_FIELD, vehicle_id), ChildRef(DESTINATIONS_FIELD, destination_id))


def _child_list(node: dict[str, Any], list_field: str, child_id: str = "") -> list[Any]:
    children = node.get(list_field)
    if not isinstance(children, list):
        raise FleetStaleReferenceError(
            f"{list_field!r} is not a list",
            list_field=list_field,
            child_id=child_id,
        )
    return children


def _locate(node: dict[str, Any], ref: ChildRef) -> dict[str, Any]:
    for child in _child_list(node, ref.list_field, ref.child_id):
        if isinstance(child, dict) and child.get(ID_FIELD) == ref.child_id:
            return child
    raise FleetStaleReferenceError(
        f"No {ref.list_field} child with id {ref.child_id!r}",
        list_field=ref.list_field,
        child_id=ref.child_id,
    )


def edit(document: Mapping[str, Any], path: Path, updater: Updater) -> Any:
    """Apply *updater* to the node addressed by *path* inside a copy of *document*.

    The updater receives the copied node and may either modify it in place
    (returning ``None``) or return a replacement mapping. It may raise
    :class:`FleetStaleReferenceError` to signal a no-op.
    """
    result = copy.deepcopy(dict(document))
    try:
        node = result
        for ref in path:
            node = _locate(node, ref)
        replacement = updater(node)
    except FleetStaleReferenceError as exc:
        _logger.debug("Nested edit skipped on %s: %s", document.get(ID_FIELD), exc)
        return document

    if replacement is not None and replacement is not node:
        fresh = copy.deepcopy(dict(replacement))
        node.clear()
        node.update(fresh)
    return result


def set_field(document: Mapping[str, Any], path: Path, field: str, value: Any) -> Any:
    def _set(node: dict[str, Any]) -> None:
        node[field] = copy.deepcopy(value)

    return edit(document, path, _set)


def toggle_field(
    document: Mapping[str, Any],
    path: Path,
    field: str,
    values: tuple[Any, Any] | None = None,
) -> Any:
    """Flip a boolean field, or swap between the two given *values*.

    With *values* ``(a, b)`` the field becomes ``b`` when it currently
    equals ``a`` and ``a`` otherwise.
    """

    def _toggle(node: dict[str, Any]) -> None:
        current = node.get(field)
        if values is None:
            node[field] = not bool(current)
            return
        first, second = values
        node[field] = second if current == first else first

    return edit(document, path, _toggle)


def append_child(document: Mapping[str, Any], path: Path, list_field: str, child: Mapping[str, Any]) -> Any:
    def _append(node: dict[str, Any]) -> None:
        if node.get(list_field) is None:
            node[list_field] = []
        _child_list(node, list_field).append(copy.deepcopy(dict(child)))

    return edit(document, path, _append)


def remove_child(document: Mapping[str, Any], path: Path, list_field: str, child_id: str) -> Any:
    def _remove(node: dict[str, Any]) -> None:
        children = _child_list(node, list_field, child_id)
        remaining = [c for c in children if not (isinstance(c, dict) and c.get(ID_FIELD) == child_id)]
        if len(remaining) == len(children):
            raise FleetStaleReferenceError(
                f"No {list_field} child with id {child_id!r}",
                list_field=list_field,
                child_id=child_id,
            )
        node[list_field] = remaining

    return edit(document, path, _remove)
