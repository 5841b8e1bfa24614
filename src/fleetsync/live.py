"""One live ``(collection, filter)`` binding.

:class:`LiveCollection` wires a :class:`~fleetsync.state.store.DocumentStore`,
its :class:`~fleetsync.feed.ChangeFeed` and a
:class:`~fleetsync.state.reconciler.Reconciler` together, and routes every
write through the shared :class:`~fleetsync.mutations.MutationGateway`
with the reconciler as optimistic overlay.

Usage::

    async with LiveCollection(remote, gateway, "schedules", FieldFilter.for_day(day)) as live:
        await live.edit(schedule_id, lambda doc: set_field(doc, vehicle_path(v_id), "driver", "Ana"))
        rows = live.view(sort=SortState("name", SortDirection.ASC)).rows()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from fleetsync._constants import ID_FIELD, UPDATED_AT_FIELD
from fleetsync.exceptions import FleetSubscriptionError, FleetWriteError
from fleetsync.feed import ChangeFeed
from fleetsync.mutations import MutationGateway
from fleetsync.remote import RemoteStore
from fleetsync.state.events import FeedSnapshot, FeedState, FieldFilter
from fleetsync.state.reconciler import Reconciler
from fleetsync.state.store import DocumentStore
from fleetsync.views import ComputedField, DerivedView, Predicate, SortState

_logger = logging.getLogger(__name__)

Operation = Callable[[dict[str, Any]], Any]


def changed_fields(current: Mapping[str, Any], updated: Mapping[str, Any]) -> dict[str, Any]:
    """Top-level fields of *updated* that differ from *current*."""
    return {
        key: value
        for key, value in updated.items()
        if key not in (ID_FIELD, UPDATED_AT_FIELD) and (key not in current or current[key] != value)
    }


class LiveCollection:
    """Live, optimistic view of one filtered collection."""

    def __init__(
        self,
        remote: RemoteStore,
        gateway: MutationGateway,
        collection: str,
        filter: FieldFilter | None = None,
    ) -> None:
        self._store = DocumentStore(collection, filter)
        self._reconciler = Reconciler(self._store)
        self._feed = ChangeFeed(remote, self._store)
        self._feed.add_listener(self._on_delivery)
        self._gateway = gateway
        self._alive = True

    async def __aenter__(self) -> LiveCollection:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def collection(self) -> str:
        return self._store.collection

    @property
    def filter(self) -> FieldFilter | None:
        return self._feed.filter

    @property
    def state(self) -> FeedState:
        return self._feed.state

    @property
    def error(self) -> FleetSubscriptionError | None:
        return self._feed.error

    @property
    def is_alive(self) -> bool:
        return self._alive

    @property
    def reconciler(self) -> Reconciler:
        return self._reconciler

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Called whenever the presented record set may have changed."""
        return self._reconciler.add_listener(listener)

    def add_state_listener(self, listener: Callable[[FeedState], None]) -> Callable[[], None]:
        return self._feed.add_state_listener(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        if not self._alive:
            raise FleetSubscriptionError(f"{self.collection} view is closed", collection=self.collection)
        await self._feed.start()

    async def set_filter(self, filter: FieldFilter | None) -> None:
        """Rebind to a new filter: fresh store, full resubscribe, pending edits dropped."""
        if not self._alive:
            raise FleetSubscriptionError(f"{self.collection} view is closed", collection=self.collection)
        store = DocumentStore(self.collection, filter)
        if store.key == self._store.key:
            return
        _logger.debug("Rebinding %s: %s -> %s", self.collection, self._store.filter, filter)
        self._store = store
        self._reconciler.rebind(store)
        await self._feed.resubscribe(store)

    async def set_day(self, day: date | datetime | str) -> None:
        await self.set_filter(FieldFilter.for_day(day))

    async def close(self) -> None:
        if not self._alive:
            return
        self._alive = False
        self._reconciler.close()
        await self._feed.close()
        _logger.debug("Closed live view %s filter=%s", self.collection, self._store.filter)

    def _on_delivery(self, snapshot: FeedSnapshot, changed: bool) -> None:
        self._reconciler.snapshot_delivered()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def records(self) -> list[dict[str, Any]]:
        return self._reconciler.records()

    def get(self, doc_id: str) -> dict[str, Any] | None:
        return self._reconciler.get(doc_id)

    def view(
        self,
        *,
        sort: SortState | None = None,
        where: Predicate | None = None,
        computed: Mapping[str, ComputedField] | None = None,
    ) -> DerivedView:
        return DerivedView(self.records(), sort=sort, where=where, computed=computed)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _ensure_alive(self, doc_id: str) -> None:
        if not self._alive:
            raise FleetWriteError(
                f"{self.collection} view is closed",
                collection=self.collection,
                doc_id=doc_id,
            )

    async def create(self, doc_id: str, document: Mapping[str, Any]) -> dict[str, Any]:
        self._ensure_alive(doc_id)
        return await self._gateway.create(self.collection, doc_id, document, optimistic=self._reconciler)

    async def patch(self, doc_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        self._ensure_alive(doc_id)
        return await self._gateway.patch(self.collection, doc_id, fields, optimistic=self._reconciler)

    async def remove(self, doc_id: str) -> None:
        self._ensure_alive(doc_id)
        await self._gateway.remove(self.collection, doc_id, optimistic=self._reconciler)

    async def edit(self, doc_id: str, operation: Operation) -> bool:
        """Apply a nested edit to the presented version of *doc_id* and write it back.

        *operation* is one of the :mod:`fleetsync.editor` functions bound
        to its path. Returns ``False`` without writing when the document or
        the addressed child no longer exists, or nothing changed.
        """
        self._ensure_alive(doc_id)
        current = self.get(doc_id)
        if current is None:
            _logger.debug("Edit on missing %s/%s skipped", self.collection, doc_id)
            return False
        updated = operation(current)
        if updated is current:
            return False
        fields = changed_fields(current, updated)
        if not fields:
            return False
        await self.patch(doc_id, fields)
        return True
