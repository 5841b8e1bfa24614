"""Change feed: one remote subscription feeding one document store.

Lifecycle::

    INITIALIZING -> LOADING -> READY | ERROR
    READY | ERROR -> LOADING   (only through resubscribe with a new filter)

Errors are surfaced through :attr:`ChangeFeed.error` and never retried;
the consumer decides whether to resubscribe.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

from fleetsync.exceptions import FleetError, FleetSubscriptionError
from fleetsync.remote import RemoteStore, Subscription
from fleetsync.state.events import FeedSnapshot, FeedState, FieldFilter
from fleetsync.state.store import DocumentStore

_logger = logging.getLogger(__name__)

DeliveryListener = Callable[[FeedSnapshot, bool], None]
StateListener = Callable[[FeedState], None]


class ChangeFeed:
    """Pushes full snapshots of ``(collection, filter)`` into a :class:`DocumentStore`."""

    def __init__(self, remote: RemoteStore, store: DocumentStore) -> None:
        self._remote = remote
        self._store = store
        self._state = FeedState.INITIALIZING
        self._error: FleetSubscriptionError | None = None
        self._subscription: Subscription | None = None
        self._generation = 0
        self._sequence = 0
        self._closed = False
        self._listeners: list[DeliveryListener] = []
        self._state_listeners: list[StateListener] = []

    @property
    def collection(self) -> str:
        return self._store.collection

    @property
    def filter(self) -> FieldFilter | None:
        return self._store.filter

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def error(self) -> FleetSubscriptionError | None:
        return self._error

    def add_listener(self, listener: DeliveryListener) -> Callable[[], None]:
        """Called after every delivery with ``(snapshot, store_changed)``."""
        self._listeners.append(listener)
        return functools.partial(self._remove, self._listeners, listener)

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        self._state_listeners.append(listener)
        return functools.partial(self._remove, self._state_listeners, listener)

    @staticmethod
    def _remove(listeners: list[Any], listener: Any) -> None:
        if listener in listeners:
            listeners.remove(listener)

    def _set_state(self, state: FeedState) -> None:
        if state is self._state:
            return
        _logger.debug("Feed %s filter=%s: %s -> %s", self.collection, self.filter, self._state, state)
        self._state = state
        for listener in list(self._state_listeners):
            listener(state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Attach the subscription (no-op once started)."""
        if self._closed:
            raise FleetSubscriptionError("Feed is closed", collection=self.collection)
        if self._state is not FeedState.INITIALIZING:
            return
        await self._subscribe()

    async def resubscribe(self, store: DocumentStore) -> None:
        """Full resubscribe for a changed filter, feeding a fresh store."""
        if self._closed:
            raise FleetSubscriptionError("Feed is closed", collection=self.collection)
        if store.key == self._store.key:
            return
        await self._release()
        self._store = store
        self._error = None
        await self._subscribe()

    async def close(self) -> None:
        """Unsubscribe; deliveries arriving afterwards are dropped."""
        if self._closed:
            return
        self._closed = True
        await self._release()
        self._listeners.clear()
        self._state_listeners.clear()

    async def _release(self) -> None:
        self._generation += 1
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            await subscription.close()

    async def _subscribe(self) -> None:
        self._generation += 1
        generation = self._generation
        self._set_state(FeedState.LOADING)
        try:
            subscription = await self._remote.subscribe(
                self.collection,
                self.filter,
                on_snapshot=functools.partial(self._on_snapshot, generation),
                on_error=functools.partial(self._on_error, generation),
            )
        except FleetError as exc:
            self._on_error(generation, exc)
            return

        if self._closed or generation != self._generation:
            await subscription.close()
            return
        self._subscription = subscription

    # ------------------------------------------------------------------
    # Remote callbacks
    # ------------------------------------------------------------------

    def _on_snapshot(self, generation: int, records: list[dict[str, Any]]) -> None:
        if self._closed or generation != self._generation:
            _logger.debug("Dropping late snapshot for %s filter=%s", self.collection, self.filter)
            return
        self._sequence += 1
        snapshot = FeedSnapshot(
            collection=self.collection,
            filter=self.filter,
            sequence=self._sequence,
            records=records,
        )
        changed = self._store.replace_all(snapshot.records)
        self._error = None
        self._set_state(FeedState.READY)
        for listener in list(self._listeners):
            listener(snapshot, changed)

    def _on_error(self, generation: int, exc: BaseException) -> None:
        if self._closed or generation != self._generation:
            return
        if isinstance(exc, FleetSubscriptionError):
            error = exc
        else:
            error = FleetSubscriptionError(
                f"Subscription to {self.collection} failed: {exc}",
                collection=self.collection,
            )
            error.__cause__ = exc
        _logger.warning("Feed %s filter=%s error: %s", self.collection, self.filter, error)
        self._error = error
        self._set_state(FeedState.ERROR)
