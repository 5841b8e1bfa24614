"""Document-level writes against the remote store.

The gateway knows nothing about nested paths: every nested edit arrives
here as a whole (top-level) document produced by :mod:`fleetsync.editor`.
It stamps ``updatedAt``, validates ids before any call, and optionally
runs the write under a :class:`~fleetsync.state.reconciler.Reconciler`
so the local version is presented while the write is in flight.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from fleetsync._constants import ID_FIELD, UPDATED_AT_FIELD
from fleetsync._redact import redact_for_log
from fleetsync.exceptions import FleetTransportError, FleetUnavailableError, FleetValidationError, FleetWriteError
from fleetsync.remote import RemoteStore
from fleetsync.state.reconciler import Reconciler

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def merge_document(target: dict[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Merge-write semantics: nested mappings merge, everything else overwrites.

    Lists are replaced as a whole, which is why a nested child edit must
    rewrite the complete parent array.
    """
    for key, value in incoming.items():
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            merge_document(existing, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def _require_id(collection: str, doc_id: str) -> None:
    if not collection:
        raise FleetValidationError("collection must be non-empty", field="collection")
    if not isinstance(doc_id, str) or not doc_id.strip():
        raise FleetValidationError(f"{collection}: document id must be non-empty", field=ID_FIELD)


def _require_mapping(collection: str, doc_id: str, payload: Any) -> None:
    if not isinstance(payload, Mapping):
        raise FleetValidationError(f"{collection}/{doc_id}: payload must be a mapping, got {type(payload).__name__}")


class MutationGateway:
    """Create / patch / remove with merge semantics and at-most-once delivery."""

    def __init__(
        self,
        remote: RemoteStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._remote = remote
        self._clock = clock

    def _stamp(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        payload = {key: copy.deepcopy(value) for key, value in fields.items() if key != UPDATED_AT_FIELD}
        payload[UPDATED_AT_FIELD] = self._clock().isoformat()
        return payload

    async def _run(self, op: str, collection: str, doc_id: str, call: Awaitable[None]) -> None:
        try:
            await call
        except FleetWriteError as exc:
            _logger.warning("%s %s/%s rejected: %s", op, collection, doc_id, exc)
            raise
        except FleetTransportError as exc:
            _logger.warning("%s %s/%s failed: %s", op, collection, doc_id, exc)
            raise FleetUnavailableError(
                f"{op} {collection}/{doc_id} failed: {exc}",
                collection=collection,
                doc_id=doc_id,
            ) from exc

    async def create(
        self,
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
        *,
        optimistic: Reconciler | None = None,
    ) -> dict[str, Any]:
        """Idempotent merge-upsert of a whole document; returns the written payload."""
        _require_id(collection, doc_id)
        _require_mapping(collection, doc_id, document)
        if document.get(ID_FIELD, doc_id) != doc_id:
            raise FleetValidationError(
                f"{collection}: document id {document.get(ID_FIELD)!r} does not match {doc_id!r}",
                field=ID_FIELD,
            )
        payload = self._stamp(document)
        payload[ID_FIELD] = doc_id
        _logger.debug("create %s/%s %s", collection, doc_id, redact_for_log(payload))

        call = self._run("create", collection, doc_id, self._remote.upsert(collection, doc_id, payload, merge=True))
        if optimistic is None:
            await call
        else:
            local = merge_document(optimistic.get(doc_id) or {}, payload)
            await optimistic.track(doc_id, local, call)
        return payload

    async def patch(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        optimistic: Reconciler | None = None,
    ) -> dict[str, Any]:
        """Merge-write of the named fields only; returns the written payload."""
        _require_id(collection, doc_id)
        _require_mapping(collection, doc_id, fields)
        if not fields:
            raise FleetValidationError(f"{collection}/{doc_id}: nothing to patch")
        if ID_FIELD in fields and fields[ID_FIELD] != doc_id:
            raise FleetValidationError(f"{collection}/{doc_id}: id is immutable", field=ID_FIELD)
        payload = self._stamp(fields)
        _logger.debug("patch %s/%s %s", collection, doc_id, redact_for_log(payload))

        call = self._run("patch", collection, doc_id, self._remote.patch(collection, doc_id, payload))
        if optimistic is None:
            await call
        else:
            current = optimistic.get(doc_id)
            local = {**current, **copy.deepcopy(payload)} if current is not None else None
            if local is None:
                await call
            else:
                await optimistic.track(doc_id, local, call)
        return payload

    async def remove(
        self,
        collection: str,
        doc_id: str,
        *,
        optimistic: Reconciler | None = None,
    ) -> None:
        """Delete a whole document (nested children are removed by patching the parent)."""
        _require_id(collection, doc_id)
        _logger.debug("remove %s/%s", collection, doc_id)

        call = self._run("remove", collection, doc_id, self._remote.delete(collection, doc_id))
        if optimistic is None:
            await call
        else:
            await optimistic.track(doc_id, None, call)
