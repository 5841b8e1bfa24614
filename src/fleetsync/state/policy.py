"""Deterministic presentation policy for pending local edits.

This module holds the pure rules; :mod:`fleetsync.state.reconciler` owns
the bookkeeping.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Any, Protocol

from fleetsync._constants import ID_FIELD


class PendingPhase(StrEnum):
    IN_FLIGHT = "in_flight"
    ACKNOWLEDGED = "acknowledged"


class _Overlay(Protocol):
    document: dict[str, Any] | None
    phase: PendingPhase


def retains_on_snapshot(phase: PendingPhase) -> bool:
    """Whether a pending edit survives the arrival of a new snapshot.

    In-flight edits outrank any snapshot, since a snapshot may have raced
    ahead of the write. Acknowledged edits give way to the next snapshot,
    which is at least as new as the write.
    """
    return phase is PendingPhase.IN_FLIGHT


def present(
    baseline: Sequence[Mapping[str, Any]],
    overlays: Mapping[str, _Overlay],
) -> list[dict[str, Any]]:
    """Merge pending overlays into the snapshot baseline.

    - overlaid documents replace their baseline record in place;
    - pending deletes (``document is None``) hide the record;
    - pending documents absent from the baseline are appended in
      issuance order.
    """
    result: list[dict[str, Any]] = []
    seen: set[str] = set()
    for record in baseline:
        doc_id = record.get(ID_FIELD)
        overlay = overlays.get(doc_id) if isinstance(doc_id, str) else None
        if overlay is None:
            result.append(dict(record))
            continue
        seen.add(doc_id)  # type: ignore[arg-type]
        if overlay.document is not None:
            result.append(copy.deepcopy(overlay.document))

    for doc_id, overlay in overlays.items():
        if doc_id in seen or overlay.document is None:
            continue
        result.append(copy.deepcopy(overlay.document))
    return result
