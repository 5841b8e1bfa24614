"""Keyed in-memory document store for one ``(collection, filter)`` pair.

The store has no public mutation API besides :meth:`DocumentStore.replace_all`,
which the change feed calls with every full snapshot.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from fleetsync._constants import ID_FIELD
from fleetsync.state.events import FieldFilter

_logger = logging.getLogger(__name__)

StoreListener = Callable[[], None]


def _same_content(old: dict[str, dict[str, Any]], new: dict[str, dict[str, Any]]) -> bool:
    """Same ids in the same order and equal records."""
    if len(old) != len(new):
        return False
    if list(old) != list(new):
        return False
    return all(old[doc_id] == new[doc_id] for doc_id in new)


class DocumentStore:
    """Canonical snapshot baseline of one subscribed collection view."""

    def __init__(self, collection: str, filter: FieldFilter | None = None) -> None:
        self._collection = collection
        self._filter = filter
        self._records: dict[str, dict[str, Any]] = {}
        self._ordered: tuple[dict[str, Any], ...] | None = None
        self._listeners: list[StoreListener] = []
        self._version = 0

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def filter(self) -> FieldFilter | None:
        return self._filter

    @property
    def key(self) -> tuple[str, FieldFilter | None]:
        return (self._collection, self._filter)

    @property
    def version(self) -> int:
        """Incremented on every content change (not on no-op swaps)."""
        return self._version

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._records

    def ids(self) -> list[str]:
        return list(self._records)

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change signal; returns the matching remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def replace_all(self, records: Iterable[Mapping[str, Any]]) -> bool:
        """Atomically swap the full contents.

        Returns ``False`` (and signals nobody) when the new content is
        identical to the current one.
        """
        incoming: dict[str, dict[str, Any]] = {}
        for record in records:
            doc_id = record.get(ID_FIELD)
            if not isinstance(doc_id, str) or not doc_id:
                _logger.debug("Dropping %s record without id: %r", self._collection, record)
                continue
            incoming[doc_id] = copy.deepcopy(dict(record))

        if _same_content(self._records, incoming):
            return False

        self._records = incoming
        self._ordered = None
        self._version += 1
        _logger.debug(
            "Store %s filter=%s now holds %d records (v%d)",
            self._collection,
            self._filter,
            len(incoming),
            self._version,
        )
        for listener in list(self._listeners):
            listener()
        return True

    def get(self, doc_id: str) -> dict[str, Any] | None:
        record = self._records.get(doc_id)
        if record is None:
            return None
        return copy.deepcopy(record)

    def list(self) -> list[dict[str, Any]]:
        """Records in snapshot order, as copies."""
        if self._ordered is None:
            self._ordered = tuple(self._records.values())
        return [copy.deepcopy(record) for record in self._ordered]
