from __future__ import annotations

import asyncio

import pytest

from fleetsync.editor import destination_path, set_field
from fleetsync.exceptions import FleetSubscriptionError, FleetUnavailableError, FleetWriteError
from fleetsync.live import LiveCollection, changed_fields
from fleetsync.memory import MemoryRemoteStore
from fleetsync.mutations import MutationGateway
from fleetsync.state.events import FeedState, FieldFilter
from fleetsync.views import SortDirection, SortState

DAY = "2024-05-02"


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _remote() -> MemoryRemoteStore:
    remote = MemoryRemoteStore()
    remote.seed(
        "daily-status",
        [
            {"id": "r1", "date": DAY, "placa": "OLD", "peso": "10"},
            {"id": "r2", "date": DAY, "placa": "ZZZ", "peso": "2"},
            {"id": "r3", "date": "2024-05-03", "placa": "OTHER"},
        ],
    )
    remote.seed(
        "schedules",
        [
            {
                "id": "s1",
                "name": "PROGRAMAÇÃO DIÁRIA 1",
                "date": DAY,
                "vehicles": [
                    {
                        "id": "v1",
                        "plate": "ABC",
                        "destinations": [
                            {"id": "d1", "name": "Olinda", "time": ""},
                            {"id": "d2", "name": "Recife", "time": ""},
                        ],
                    }
                ],
            }
        ],
    )
    return remote


async def _open(remote: MemoryRemoteStore, collection: str) -> LiveCollection:
    live = LiveCollection(remote, MutationGateway(remote), collection, FieldFilter.for_day(DAY))
    await live.open()
    await _settle()
    return live


@pytest.mark.asyncio
async def test_patch_survives_stale_snapshot_then_adopts_remote() -> None:
    remote = _remote()
    live = await _open(remote, "daily-status")
    remote.pause_writes()

    task = asyncio.create_task(live.patch("r1", {"placa": "NEW"}))
    await _settle()
    assert live.get("r1")["placa"] == "NEW"

    remote.inject_snapshot("daily-status", [{"id": "r1", "date": DAY, "placa": "OLD"}])
    await _settle()
    assert live.get("r1")["placa"] == "NEW"

    remote.resume_writes()
    await task
    await _settle()

    assert live.reconciler.pending("r1") is None
    record = live.get("r1")
    assert record["placa"] == "NEW"
    assert record["peso"] == "10"
    assert "updatedAt" in record


@pytest.mark.asyncio
async def test_failed_patch_reverts_to_last_snapshot() -> None:
    remote = _remote()
    live = await _open(remote, "daily-status")
    remote.pause_writes()
    remote.fail_next_write(FleetUnavailableError("offline", collection="daily-status", doc_id="r1"))

    task = asyncio.create_task(live.patch("r1", {"placa": "NEW"}))
    await _settle()
    assert live.get("r1")["placa"] == "NEW"

    remote.resume_writes()
    with pytest.raises(FleetUnavailableError):
        await task

    assert live.get("r1")["placa"] == "OLD"
    assert remote.document("daily-status", "r1")["placa"] == "OLD"


@pytest.mark.asyncio
async def test_concurrent_nested_edits_on_one_document_both_land() -> None:
    remote = _remote()
    live = await _open(remote, "schedules")
    remote.pause_writes()

    first = asyncio.create_task(
        live.edit("s1", lambda doc: set_field(doc, destination_path("v1", "d1"), "time", "08:00"))
    )
    await _settle()
    second = asyncio.create_task(
        live.edit("s1", lambda doc: set_field(doc, destination_path("v1", "d2"), "time", "10:00"))
    )
    await _settle()

    local = live.get("s1")["vehicles"][0]["destinations"]
    assert [d["time"] for d in local] == ["08:00", "10:00"]

    remote.resume_writes()
    assert await asyncio.gather(first, second) == [True, True]
    await _settle()

    stored = remote.document("schedules", "s1")["vehicles"][0]["destinations"]
    assert [d["time"] for d in stored] == ["08:00", "10:00"]
    assert [d["time"] for d in live.get("s1")["vehicles"][0]["destinations"]] == ["08:00", "10:00"]


@pytest.mark.asyncio
async def test_edit_on_stale_child_skips_write() -> None:
    remote = _remote()
    live = await _open(remote, "schedules")

    written = await live.edit("s1", lambda doc: set_field(doc, destination_path("v1", "gone"), "time", "08:00"))
    missing = await live.edit("nope", lambda doc: set_field(doc, (), "name", "x"))

    assert written is False
    assert missing is False
    assert remote.write_log == []


@pytest.mark.asyncio
async def test_view_sorts_presented_records() -> None:
    remote = _remote()
    live = await _open(remote, "daily-status")

    rows = live.view(sort=SortState("peso", SortDirection.ASC)).rows()

    assert [r["id"] for r in rows] == ["r2", "r1"]


@pytest.mark.asyncio
async def test_set_day_rebinds_to_other_day() -> None:
    remote = _remote()
    live = await _open(remote, "daily-status")

    await live.set_day("2024-05-03")
    await _settle()

    assert live.filter == FieldFilter.for_day("2024-05-03")
    assert [r["id"] for r in live.records()] == ["r3"]
    assert remote.subscription_count == 1


@pytest.mark.asyncio
async def test_dropped_feed_reports_error_and_keeps_records() -> None:
    remote = _remote()
    live = await _open(remote, "daily-status")

    remote.drop_subscriptions("daily-status", FleetUnavailableError("gone"))

    assert live.state is FeedState.ERROR
    assert isinstance(live.error, FleetSubscriptionError)
    assert [r["id"] for r in live.records()] == ["r1", "r2"]


@pytest.mark.asyncio
async def test_close_stops_everything() -> None:
    remote = _remote()
    live = await _open(remote, "daily-status")
    notified: list[int] = []
    live.add_listener(lambda: notified.append(1))
    remote.pause_writes()

    task = asyncio.create_task(live.patch("r1", {"placa": "NEW"}))
    await _settle()
    notified.clear()
    await live.close()
    remote.resume_writes()
    await task
    await _settle()

    assert notified == []
    assert remote.subscription_count == 0
    assert live.is_alive is False
    with pytest.raises(FleetWriteError):
        await live.patch("r1", {"placa": "AGAIN"})
    with pytest.raises(FleetSubscriptionError):
        await live.open()


def test_changed_fields_ignores_id_and_timestamp() -> None:
    current = {"id": "s1", "name": "A", "updatedAt": "t1", "vehicles": []}
    updated = {"id": "s1", "name": "A", "updatedAt": "t2", "vehicles": [{"id": "v1"}]}
    assert changed_fields(current, updated) == {"vehicles": [{"id": "v1"}]}
