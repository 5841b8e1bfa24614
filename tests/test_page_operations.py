from __future__ import annotations

import asyncio

import pytest

from fleetsync.client import FleetClient
from fleetsync.exceptions import FleetConfigError, FleetValidationError
from fleetsync.importer import parse_pasted_rows
from fleetsync.memory import MemoryRemoteStore

DAY = "2024-05-02"


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_schedule_lifecycle() -> None:
    remote = MemoryRemoteStore()
    async with FleetClient(remote=remote) as client:
        live = await client.open_schedules(DAY)
        await _settle()

        first = await client.add_schedule(live, DAY)
        second = await client.add_schedule(live, DAY)
        assert first["name"] == "PROGRAMAÇÃO DIÁRIA 1"
        assert second["name"] == "PROGRAMAÇÃO DIÁRIA 2"
        assert first["vehicles"] == []

        with pytest.raises(FleetValidationError):
            await client.rename_schedule(live, first["id"], "   ")
        await client.rename_schedule(live, first["id"], " Rota Norte ")

        vehicle = await client.add_vehicle(live, first["id"], {"plate": "ABC1D23", "driver": "Ana"})
        assert vehicle is not None
        assert vehicle["status"] == "Em Trânsito"
        destination = await client.add_destination(live, first["id"], vehicle["id"], {"name": "Olinda"})
        assert destination is not None
        assert await client.update_destination(live, first["id"], vehicle["id"], destination["id"], "time", "08:00")
        assert await client.update_vehicle(live, first["id"], vehicle["id"], "origin", "CD Recife")
        assert await client.toggle_vehicle_status(live, first["id"], vehicle["id"])
        await _settle()

        stored = remote.document("schedules", first["id"])
        assert stored is not None
        assert stored["name"] == "Rota Norte"
        stored_vehicle = stored["vehicles"][0]
        assert stored_vehicle["plate"] == "ABC1D23"
        assert stored_vehicle["origin"] == "CD Recife"
        assert stored_vehicle["status"] == "Concluído"
        assert stored_vehicle["destinations"][0]["time"] == "08:00"

        assert await client.toggle_vehicle_status(live, first["id"], vehicle["id"])
        assert await client.complete_vehicle(live, first["id"], vehicle["id"])
        assert await client.remove_destination(live, first["id"], vehicle["id"], destination["id"])
        assert not await client.remove_destination(live, first["id"], vehicle["id"], destination["id"])
        assert await client.remove_vehicle(live, first["id"], vehicle["id"])
        await client.remove_schedule(live, second["id"])
        await _settle()

        assert remote.document("schedules", first["id"])["vehicles"] == []
        assert remote.document("schedules", second["id"]) is None
        assert [s["id"] for s in live.records()] == [first["id"]]


@pytest.mark.asyncio
async def test_vehicle_id_cannot_be_edited() -> None:
    remote = MemoryRemoteStore()
    remote.seed("schedules", [{"id": "s1", "name": "A", "date": DAY, "vehicles": [{"id": "v1"}]}])
    async with FleetClient(remote=remote) as client:
        live = await client.open_schedules(DAY)
        await _settle()
        with pytest.raises(FleetValidationError):
            await client.update_vehicle(live, "s1", "v1", "id", "v2")


@pytest.mark.asyncio
async def test_status_operations_recompute_pallets() -> None:
    remote = MemoryRemoteStore()
    async with FleetClient(remote=remote) as client:
        live = await client.open_daily_status(DAY)
        await _settle()

        record = await client.add_status_record(live, DAY)
        assert record["status"] == "Pendente"
        assert record["id"].startswith(f"{DAY}-")

        await client.update_status_record(live, record["id"], "palletsRefrig", "3")
        await client.update_status_record(live, record["id"], "palletsSecos", "5")
        await _settle()
        assert remote.document("daily-status", record["id"])["qtdPallets"] == "8"

        await client.update_status_record(live, record["id"], "palletsSecos", "abc")
        await _settle()
        assert remote.document("daily-status", record["id"])["qtdPallets"] == "3"

        assert await client.update_status_record(live, "missing", "placa", "X") is False

        await client.remove_status_record(live, record["id"])
        await _settle()
        assert live.records() == []


@pytest.mark.asyncio
async def test_pallet_total_cannot_be_written_directly() -> None:
    remote = MemoryRemoteStore()
    remote.seed(
        "daily-status",
        [{"id": "r1", "date": DAY, "palletsRefrig": "3", "palletsSecos": "5", "qtdPallets": "8"}],
    )
    async with FleetClient(remote=remote) as client:
        live = await client.open_daily_status(DAY)
        await _settle()

        with pytest.raises(FleetValidationError) as exc_info:
            await client.update_status_record(live, "r1", "qtdPallets", "99")

        assert exc_info.value.field == "qtdPallets"
        assert remote.write_log == []
        assert remote.document("daily-status", "r1")["qtdPallets"] == "8"


@pytest.mark.asyncio
async def test_import_creates_one_record_per_row() -> None:
    remote = MemoryRemoteStore()
    async with FleetClient(remote=remote) as client:
        live = await client.open_daily_status(DAY)
        await _settle()

        rows = parse_pasted_rows("HEADER\nA\tB\t1,00\t2\nC\tD\nE\tF\t3,00\t4")
        written = await client.import_status_rows(live, rows, DAY)
        await _settle()

        assert [r["transporteSAP"] for r in written] == ["A", "E"]
        assert [r["transporteSAP"] for r in live.records()] == ["A", "E"]
        assert [op for op, _, _ in remote.write_log] == ["upsert", "upsert"]


@pytest.mark.asyncio
async def test_registry_save_validates_creates_and_patches() -> None:
    remote = MemoryRemoteStore()
    async with FleetClient(remote=remote) as client:
        drivers = await client.open_registry("drivers")
        await _settle()

        with pytest.raises(FleetValidationError) as exc_info:
            await client.save_registry_entry(drivers, {"name": "  "})
        assert exc_info.value.field == "name"
        assert remote.write_log == []

        created = await client.save_registry_entry(drivers, {"name": "Ana", "phone": "81 9999"})
        await _settle()
        await client.save_registry_entry(drivers, {"id": created["id"], "name": "Ana Maria"})
        await _settle()

        stored = remote.document("drivers", created["id"])
        assert stored["name"] == "Ana Maria"
        assert stored["phone"] == "81 9999"
        assert [op for op, _, _ in remote.write_log] == ["upsert", "patch"]

        await client.remove_registry_entry(drivers, created["id"])
        await _settle()
        assert drivers.records() == []


@pytest.mark.asyncio
async def test_registry_patch_keeps_fields_missing_from_draft() -> None:
    remote = MemoryRemoteStore()
    remote.seed("locations", [{"id": "l1", "name": "CD Norte", "type": "origin"}])
    async with FleetClient(remote=remote) as client:
        locations = await client.open_registry("locations")
        await _settle()

        await client.save_registry_entry(locations, {"id": "l1", "name": "CD Norte 2"})
        await _settle()

        stored = remote.document("locations", "l1")
        assert stored["name"] == "CD Norte 2"
        assert stored["type"] == "origin"
        assert locations.get("l1")["type"] == "origin"


@pytest.mark.asyncio
async def test_vehicle_registry_requires_plate() -> None:
    remote = MemoryRemoteStore()
    async with FleetClient(remote=remote) as client:
        vehicles = await client.open_registry("vehicles")
        with pytest.raises(FleetValidationError):
            await client.save_registry_entry(vehicles, {"model": "Volvo FH"})


@pytest.mark.asyncio
async def test_registry_operations_reject_other_collections() -> None:
    remote = MemoryRemoteStore()
    async with FleetClient(remote=remote) as client:
        with pytest.raises(FleetValidationError):
            await client.open_registry("schedules")
        with pytest.raises(FleetConfigError):
            await client.watch("schedules")
