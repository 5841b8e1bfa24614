"""Arbitration between optimistic local edits and inbound snapshots.

The reconciler is the single coordination point between the mutation
path and the feed path for one document store:

- :meth:`Reconciler.track` registers a pending local version of a
  document for the duration of its write;
- :meth:`Reconciler.snapshot_delivered` is called by the feed after each
  snapshot has been swapped into the store;
- :meth:`Reconciler.records` presents the baseline with pending versions
  overlaid.

Only one pending version per document id is tracked. A newer edit
supersedes the marker of an older one (last edit wins locally); the
older write still runs to completion but no longer affects presentation.
"""

from __future__ import annotations

import copy
import itertools
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from fleetsync.state.policy import PendingPhase, present, retains_on_snapshot
from fleetsync.state.store import DocumentStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")

ReconcilerListener = Callable[[], None]


@dataclass(slots=True)
class PendingEdit:
    """Local version of one document awaiting remote acknowledgment.

    ``document`` is ``None`` for a pending delete.
    """

    doc_id: str
    token: int
    document: dict[str, Any] | None
    phase: PendingPhase = PendingPhase.IN_FLIGHT
    issued_at: float = field(default_factory=time.monotonic)


class Reconciler:
    """Presents a document store with pending local edits overlaid."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._pending: dict[str, PendingEdit] = {}
        self._tokens = itertools.count(1)
        self._listeners: list[ReconcilerListener] = []
        self._alive = True
        self._detach = store.add_listener(self._notify)

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def is_alive(self) -> bool:
        return self._alive

    def add_listener(self, listener: ReconcilerListener) -> Callable[[], None]:
        """Register a presentation-change signal; returns the matching remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        if not self._alive:
            return
        for listener in list(self._listeners):
            listener()

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def records(self) -> list[dict[str, Any]]:
        return present(self._store.list(), self._pending)

    def get(self, doc_id: str) -> dict[str, Any] | None:
        pending = self._pending.get(doc_id)
        if pending is not None:
            return copy.deepcopy(pending.document) if pending.document is not None else None
        return self._store.get(doc_id)

    def pending(self, doc_id: str) -> PendingEdit | None:
        return self._pending.get(doc_id)

    def pending_ids(self) -> list[str]:
        return list(self._pending)

    # ------------------------------------------------------------------
    # Feed path
    # ------------------------------------------------------------------

    def snapshot_delivered(self) -> None:
        """Adopt the current snapshot for every document not in flight."""
        if not self._alive:
            return
        released = [doc_id for doc_id, edit in self._pending.items() if not retains_on_snapshot(edit.phase)]
        for doc_id in released:
            del self._pending[doc_id]
        if released:
            _logger.debug("Snapshot adopted for acknowledged edits %s", released)
            self._notify()

    def rebind(self, store: DocumentStore) -> None:
        """Switch to a new store (filter change); pending markers are dropped."""
        self._detach()
        self._store = store
        self._pending.clear()
        self._detach = store.add_listener(self._notify)
        self._notify()

    # ------------------------------------------------------------------
    # Mutation path
    # ------------------------------------------------------------------

    def begin(self, doc_id: str, document: dict[str, Any] | None) -> PendingEdit:
        edit = PendingEdit(
            doc_id=doc_id,
            token=next(self._tokens),
            document=copy.deepcopy(document) if document is not None else None,
        )
        if self._alive:
            superseded = self._pending.get(doc_id)
            if superseded is not None:
                _logger.debug("Edit #%d supersedes #%d on %s", edit.token, superseded.token, doc_id)
            self._pending[doc_id] = edit
            self._notify()
        return edit

    def acknowledge(self, edit: PendingEdit) -> None:
        """Write succeeded; keep presenting the local version until the next snapshot."""
        if not self._alive or self._pending.get(edit.doc_id) is not edit:
            return
        edit.phase = PendingPhase.ACKNOWLEDGED

    def reject(self, edit: PendingEdit) -> None:
        """Write failed; fall back to the last snapshot baseline."""
        if not self._alive or self._pending.get(edit.doc_id) is not edit:
            return
        del self._pending[edit.doc_id]
        _logger.debug("Edit #%d on %s rolled back", edit.token, edit.doc_id)
        self._notify()

    async def track(self, doc_id: str, document: dict[str, Any] | None, write: Awaitable[T]) -> T:
        """Present *document* while *write* runs, then reconcile.

        The write's exception propagates after rollback.
        """
        edit = self.begin(doc_id, document)
        try:
            result = await write
        except Exception:
            self.reject(edit)
            raise
        self.acknowledge(edit)
        return result

    def close(self) -> None:
        """Tear down; later write resolutions leave no trace."""
        self._alive = False
        self._detach()
        self._pending.clear()
        self._listeners.clear()
