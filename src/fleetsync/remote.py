"""Remote document store contract and its HTTP implementation.

The core only depends on :class:`RemoteStore`; :class:`HttpRemoteStore`
talks to the document service over aiohttp and turns MQTT change
notifications into snapshot refetches.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from fleetsync._mqtt import ChangeNotice
from fleetsync._transport import HttpTransport
from fleetsync.exceptions import (
    FleetError,
    FleetNotFoundError,
    FleetPermissionDeniedError,
    FleetSubscriptionError,
    FleetTransportError,
    FleetUnavailableError,
    FleetWriteError,
)
from fleetsync.state.events import FieldFilter

_logger = logging.getLogger(__name__)

SnapshotHandler = Callable[[list[dict[str, Any]]], None]
ErrorHandler = Callable[[BaseException], None]


class Subscription(Protocol):
    """Disposable handle of one live subscription."""

    async def close(self) -> None: ...


class RemoteStore(Protocol):
    """Narrow contract of the remote document store.

    ``subscribe`` must deliver the complete matching result set once on
    attach and again after every relevant change, in causal order.
    """

    async def subscribe(
        self,
        collection: str,
        filter: FieldFilter | None,
        *,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription: ...

    async def upsert(
        self,
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
        *,
        merge: bool = True,
    ) -> None: ...

    async def patch(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...


def map_write_error(exc: FleetTransportError, *, collection: str, doc_id: str) -> FleetWriteError:
    """Translate an HTTP failure into the write error taxonomy."""
    status = exc.status_code
    message = f"Write to {collection}/{doc_id} failed: {exc}"
    if status in (401, 403):
        return FleetPermissionDeniedError(message, collection=collection, doc_id=doc_id)
    if status == 404:
        return FleetNotFoundError(message, collection=collection, doc_id=doc_id)
    return FleetUnavailableError(message, collection=collection, doc_id=doc_id)


class _HttpSubscription:
    """One polling-on-notice subscription.

    Refetches are serialized through a single drain task; notices that
    arrive while a fetch is running coalesce into one follow-up fetch.
    Every fetch is numbered when issued and a result older than the last
    delivered one is dropped, so the initial load cannot overwrite a
    newer refetch.
    """

    def __init__(
        self,
        owner: HttpRemoteStore,
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
        self._dirty = False
        self._closed = False
        self._task: asyncio.Task[None] | None = None
        self._issued = 0
        self._delivered = 0

    async def _fetch(self) -> tuple[int, list[dict[str, Any]]]:
        self._issued += 1
        seq = self._issued
        return seq, await self._owner.fetch_documents(self.collection, self.filter)

    def _deliver(self, seq: int, documents: list[dict[str, Any]]) -> None:
        if self._closed:
            return
        if seq < self._delivered:
            _logger.debug("Discarding stale fetch #%d for %s (delivered #%d)", seq, self.collection, self._delivered)
            return
        self._delivered = seq
        self._on_snapshot(documents)

    async def fetch_initial(self) -> None:
        self._deliver(*await self._fetch())

    def notify(self) -> None:
        if self._closed:
            return
        self._dirty = True
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._dirty and not self._closed:
            self._dirty = False
            try:
                seq, documents = await self._fetch()
            except FleetError as exc:
                _logger.warning("Subscription %s filter=%s dropped: %s", self.collection, self.filter, exc)
                self._closed = True
                self._owner._unregister(self)  # noqa: SLF001
                self._on_error(exc)
                return
            self._deliver(seq, documents)

    async def close(self) -> None:
        if self._closed and self._task is None:
            return
        self._closed = True
        self._owner._unregister(self)  # noqa: SLF001
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


class HttpRemoteStore:
    """Document service client implementing :class:`RemoteStore`."""

    def __init__(self, transport: HttpTransport) -> None:
        self._transport = transport
        self._subscriptions: dict[str, set[_HttpSubscription]] = {}

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def on_notice(self, notice: ChangeNotice) -> None:
        """Entry point for MQTT notices (called on the event loop)."""
        subscriptions = self._subscriptions.get(notice.collection)
        if not subscriptions:
            return
        _logger.debug("Change notice for %s ids=%s", notice.collection, notice.doc_ids)
        for subscription in list(subscriptions):
            subscription.notify()

    def _register(self, subscription: _HttpSubscription) -> None:
        self._subscriptions.setdefault(subscription.collection, set()).add(subscription)

    def _unregister(self, subscription: _HttpSubscription) -> None:
        subscriptions = self._subscriptions.get(subscription.collection)
        if subscriptions is None:
            return
        subscriptions.discard(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.collection]

    @property
    def subscription_count(self) -> int:
        return sum(len(subs) for subs in self._subscriptions.values())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_documents(self, collection: str, filter: FieldFilter | None) -> list[dict[str, Any]]:
        params: dict[str, str] | None = None
        if filter is not None:
            params = {"field": filter.field, "value": filter.value}
        try:
            body = await self._transport.request(
                "GET",
                self._transport.collection_path(collection),
                params=params,
            )
        except FleetTransportError as exc:
            raise FleetSubscriptionError(
                f"Could not load {collection}: {exc}",
                collection=collection,
            ) from exc

        documents = body.get("documents") if isinstance(body, dict) else None
        if not isinstance(documents, list):
            raise FleetSubscriptionError(
                f"Malformed snapshot for {collection}: missing 'documents'",
                collection=collection,
            )
        return [doc for doc in documents if isinstance(doc, dict)]

    async def subscribe(
        self,
        collection: str,
        filter: FieldFilter | None,
        *,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> _HttpSubscription:
        subscription = _HttpSubscription(self, collection, filter, on_snapshot, on_error)
        self._register(subscription)
        try:
            await subscription.fetch_initial()
        except FleetError:
            await subscription.close()
            raise
        return subscription

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _write(
        self,
        method: str,
        collection: str,
        doc_id: str,
        *,
        params: dict[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        try:
            await self._transport.request(
                method,
                self._transport.collection_path(collection, doc_id),
                params=params,
                payload=dict(payload) if payload is not None else None,
            )
        except FleetTransportError as exc:
            raise map_write_error(exc, collection=collection, doc_id=doc_id) from exc

    async def upsert(
        self,
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
        *,
        merge: bool = True,
    ) -> None:
        await self._write(
            "PUT",
            collection,
            doc_id,
            params={"merge": "true" if merge else "false"},
            payload=document,
        )

    async def patch(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self._write("PATCH", collection, doc_id, payload=fields)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._write("DELETE", collection, doc_id)
