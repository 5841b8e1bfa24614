"""In-process :class:`~fleetsync.remote.RemoteStore`.

Behaves like the document service: merge upserts, not-found on patch,
server-side equality filtering and full-snapshot push to every matching
subscription after each write, delivered in write order on the running
event loop. It also offers knobs to pause writes, inject failures and
replay stale snapshots, which is how the reconciliation paths are
exercised without a network.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Any

from fleetsync._constants import ID_FIELD
from fleetsync.exceptions import FleetNotFoundError, FleetSubscriptionError, FleetWriteError
from fleetsync.mutations import merge_document
from fleetsync.remote import ErrorHandler, SnapshotHandler
from fleetsync.state.events import FieldFilter

_logger = logging.getLogger(__name__)


class _MemorySubscription:
    def __init__(
        self,
        owner: MemoryRemoteStore,
        collection: str,
        filter: FieldFilter | None,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> None:
        self._owner = owner
        self.collection = collection
        self.filter = filter
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self.closed = False

    def matches(self, document: Mapping[str, Any]) -> bool:
        return self.filter is None or self.filter.matches(document)

    def schedule(self, records: list[dict[str, Any]]) -> None:
        asyncio.get_running_loop().call_soon(self._deliver, records)

    def _deliver(self, records: list[dict[str, Any]]) -> None:
        if not self.closed:
            self._on_snapshot(records)

    def fail(self, exc: BaseException) -> None:
        if self.closed:
            return
        self.closed = True
        self._owner._subscriptions.remove(self)  # noqa: SLF001
        self._on_error(exc)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._owner._subscriptions.remove(self)  # noqa: SLF001


class MemoryRemoteStore:
    """Remote store living in process memory."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: list[_MemorySubscription] = []
        self._write_failures: deque[FleetWriteError] = deque()
        self._subscribe_failure: FleetSubscriptionError | None = None
        self._writes_open: asyncio.Event | None = None
        self.write_log: list[tuple[str, str, str]] = []

    # ------------------------------------------------------------------
    # Inspection and test knobs
    # ------------------------------------------------------------------

    def documents(self, collection: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._collections.get(collection, {}).values()]

    def document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def seed(self, collection: str, documents: Iterable[Mapping[str, Any]]) -> None:
        """Load documents without notifying subscribers."""
        target = self._collections.setdefault(collection, {})
        for doc in documents:
            target[str(doc[ID_FIELD])] = copy.deepcopy(dict(doc))

    def fail_next_write(self, exc: FleetWriteError) -> None:
        self._write_failures.append(exc)

    def fail_subscriptions(self, exc: FleetSubscriptionError | None) -> None:
        """Make subsequent ``subscribe`` calls raise *exc* (``None`` clears)."""
        self._subscribe_failure = exc

    def drop_subscriptions(self, collection: str, exc: BaseException) -> None:
        """Simulate the backend dropping every live subscription on *collection*."""
        for subscription in [s for s in self._subscriptions if s.collection == collection]:
            subscription.fail(exc)

    def pause_writes(self) -> None:
        """Hold every write until :meth:`resume_writes` (simulates a slow backend)."""
        if self._writes_open is None:
            self._writes_open = asyncio.Event()

    def resume_writes(self) -> None:
        gate = self._writes_open
        self._writes_open = None
        if gate is not None:
            gate.set()

    def inject_snapshot(self, collection: str, documents: Iterable[Mapping[str, Any]]) -> None:
        """Deliver arbitrary (possibly stale) content to subscriptions on *collection*."""
        docs = [copy.deepcopy(dict(doc)) for doc in documents]
        for subscription in list(self._subscriptions):
            if subscription.collection == collection:
                subscription.schedule([doc for doc in docs if subscription.matches(doc)])

    # ------------------------------------------------------------------
    # RemoteStore contract
    # ------------------------------------------------------------------

    def _query(self, subscription: _MemorySubscription) -> list[dict[str, Any]]:
        docs = self._collections.get(subscription.collection, {}).values()
        return [copy.deepcopy(doc) for doc in docs if subscription.matches(doc)]

    def _publish(self, collection: str) -> None:
        for subscription in list(self._subscriptions):
            if subscription.collection == collection:
                subscription.schedule(self._query(subscription))

    async def _before_write(self, op: str, collection: str, doc_id: str) -> None:
        gate = self._writes_open
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if self._write_failures:
            exc = self._write_failures.popleft()
            _logger.debug("Injected %s failure on %s/%s: %s", op, collection, doc_id, exc)
            raise exc
        self.write_log.append((op, collection, doc_id))

    async def subscribe(
        self,
        collection: str,
        filter: FieldFilter | None,
        *,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> _MemorySubscription:
        await asyncio.sleep(0)
        if self._subscribe_failure is not None:
            raise self._subscribe_failure
        subscription = _MemorySubscription(self, collection, filter, on_snapshot, on_error)
        self._subscriptions.append(subscription)
        subscription.schedule(self._query(subscription))
        return subscription

    async def upsert(
        self,
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
        *,
        merge: bool = True,
    ) -> None:
        await self._before_write("upsert", collection, doc_id)
        docs = self._collections.setdefault(collection, {})
        existing = docs.get(doc_id)
        if merge and existing is not None:
            updated = merge_document(copy.deepcopy(existing), document)
        else:
            updated = copy.deepcopy(dict(document))
        updated[ID_FIELD] = doc_id
        docs[doc_id] = updated
        self._publish(collection)

    async def patch(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self._before_write("patch", collection, doc_id)
        existing = self._collections.get(collection, {}).get(doc_id)
        if existing is None:
            raise FleetNotFoundError(
                f"{collection}/{doc_id} does not exist",
                collection=collection,
                doc_id=doc_id,
            )
        for key, value in fields.items():
            existing[key] = copy.deepcopy(value)
        self._publish(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._before_write("delete", collection, doc_id)
        self._collections.get(collection, {}).pop(doc_id, None)
        self._publish(collection)
