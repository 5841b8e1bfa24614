from __future__ import annotations

import asyncio

import pytest

from fleetsync.exceptions import FleetUnavailableError
from fleetsync.state.policy import PendingPhase
from fleetsync.state.reconciler import Reconciler
from fleetsync.state.store import DocumentStore


def _store() -> DocumentStore:
    store = DocumentStore("daily-status")
    store.replace_all([{"id": "r1", "placa": "OLD"}, {"id": "r2", "placa": "KEEP"}])
    return store


async def _gated(gate: asyncio.Event, error: Exception | None = None) -> None:
    await gate.wait()
    if error is not None:
        raise error


@pytest.mark.asyncio
async def test_in_flight_edit_survives_stale_snapshot_and_gives_way_after_ack() -> None:
    store = _store()
    reconciler = Reconciler(store)
    gate = asyncio.Event()

    task = asyncio.create_task(reconciler.track("r1", {"id": "r1", "placa": "NEW"}, _gated(gate)))
    await asyncio.sleep(0)
    assert reconciler.get("r1") == {"id": "r1", "placa": "NEW"}

    store.replace_all([{"id": "r1", "placa": "OLD", "x": 1}, {"id": "r2", "placa": "KEEP"}])
    reconciler.snapshot_delivered()
    assert reconciler.get("r1") == {"id": "r1", "placa": "NEW"}
    assert reconciler.get("r2") == {"id": "r2", "placa": "KEEP"}

    gate.set()
    await task
    pending = reconciler.pending("r1")
    assert pending is not None
    assert pending.phase is PendingPhase.ACKNOWLEDGED
    assert reconciler.get("r1") == {"id": "r1", "placa": "NEW"}

    store.replace_all([{"id": "r1", "placa": "NEW", "updatedAt": "t"}, {"id": "r2", "placa": "KEEP"}])
    reconciler.snapshot_delivered()
    assert reconciler.pending("r1") is None
    assert reconciler.get("r1") == {"id": "r1", "placa": "NEW", "updatedAt": "t"}


@pytest.mark.asyncio
async def test_failed_write_reverts_to_baseline_and_propagates() -> None:
    store = _store()
    reconciler = Reconciler(store)
    gate = asyncio.Event()
    notified: list[int] = []
    reconciler.add_listener(lambda: notified.append(1))

    task = asyncio.create_task(
        reconciler.track("r1", {"id": "r1", "placa": "NEW"}, _gated(gate, FleetUnavailableError("down")))
    )
    await asyncio.sleep(0)
    assert reconciler.records()[0]["placa"] == "NEW"

    gate.set()
    with pytest.raises(FleetUnavailableError):
        await task

    assert reconciler.records() == [{"id": "r1", "placa": "OLD"}, {"id": "r2", "placa": "KEEP"}]
    assert reconciler.pending_ids() == []
    assert len(notified) == 2


@pytest.mark.asyncio
async def test_second_edit_supersedes_first_marker() -> None:
    store = _store()
    reconciler = Reconciler(store)
    first_gate, second_gate = asyncio.Event(), asyncio.Event()

    first = asyncio.create_task(
        reconciler.track("r1", {"id": "r1", "placa": "A"}, _gated(first_gate, FleetUnavailableError("down")))
    )
    await asyncio.sleep(0)
    second = asyncio.create_task(reconciler.track("r1", {"id": "r1", "placa": "B"}, _gated(second_gate)))
    await asyncio.sleep(0)

    first_gate.set()
    with pytest.raises(FleetUnavailableError):
        await first
    assert reconciler.get("r1") == {"id": "r1", "placa": "B"}

    second_gate.set()
    await second
    assert reconciler.get("r1") == {"id": "r1", "placa": "B"}


@pytest.mark.asyncio
async def test_pending_delete_hides_and_pending_create_appends() -> None:
    store = _store()
    reconciler = Reconciler(store)
    gate = asyncio.Event()

    delete = asyncio.create_task(reconciler.track("r2", None, _gated(gate)))
    create = asyncio.create_task(reconciler.track("r3", {"id": "r3", "placa": "NEW"}, _gated(gate)))
    await asyncio.sleep(0)

    assert [r["id"] for r in reconciler.records()] == ["r1", "r3"]
    assert reconciler.get("r2") is None

    gate.set()
    await asyncio.gather(delete, create)


@pytest.mark.asyncio
async def test_resolution_after_close_leaves_no_trace() -> None:
    store = _store()
    reconciler = Reconciler(store)
    gate = asyncio.Event()
    notified: list[int] = []
    reconciler.add_listener(lambda: notified.append(1))

    task = asyncio.create_task(
        reconciler.track("r1", {"id": "r1", "placa": "NEW"}, _gated(gate, FleetUnavailableError("down")))
    )
    await asyncio.sleep(0)
    reconciler.close()
    notified.clear()

    gate.set()
    with pytest.raises(FleetUnavailableError):
        await task

    assert notified == []
    assert reconciler.pending_ids() == []
    store.replace_all([{"id": "r1", "placa": "REMOTE"}])
    assert notified == []


def test_rebind_drops_pending_markers() -> None:
    store = _store()
    reconciler = Reconciler(store)
    reconciler.begin("r1", {"id": "r1", "placa": "NEW"})

    fresh = DocumentStore("daily-status")
    fresh.replace_all([{"id": "x1", "placa": "DAY2"}])
    reconciler.rebind(fresh)

    assert reconciler.pending_ids() == []
    assert reconciler.records() == [{"id": "x1", "placa": "DAY2"}]
    assert reconciler.store is fresh
