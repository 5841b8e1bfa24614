"""High-level async client for the fleet document service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

import aiohttp

from fleetsync._client import registry as _registry
from fleetsync._client import schedules as _schedules
from fleetsync._client import status as _status
from fleetsync._constants import DAILY_STATUS, DATED_COLLECTIONS, SCHEDULES
from fleetsync._mqtt import ChangeNotice, FleetMqttRuntime
from fleetsync._transport import HttpTransport
from fleetsync.config import FleetConfig
from fleetsync.exceptions import FleetConfigError, FleetError
from fleetsync.live import LiveCollection
from fleetsync.models import ImportRow
from fleetsync.mutations import MutationGateway
from fleetsync.remote import HttpRemoteStore, RemoteStore
from fleetsync.state.events import FieldFilter

_logger = logging.getLogger(__name__)


class FleetClient:
    """Async client owning the remote store, the gateway and every live view.

    Usage::

        async with FleetClient(FleetConfig.from_env()) as client:
            schedules = await client.open_schedules("2024-05-02")
            await client.add_schedule(schedules, "2024-05-02")
            print(schedules.records())

    Passing *remote* (e.g. a :class:`~fleetsync.memory.MemoryRemoteStore`)
    bypasses HTTP and MQTT entirely.
    """

    def __init__(
        self,
        config: FleetConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        remote: RemoteStore | None = None,
    ) -> None:
        self._config = config or FleetConfig()
        self._external_session = session is not None
        self._http_session = session
        self._remote: RemoteStore | None = remote
        self._external_remote = remote is not None
        self._gateway: MutationGateway | None = None
        self._mqtt_runtime: FleetMqttRuntime | None = None
        self._live: list[LiveCollection] = []

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetClient:
        if self._remote is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            remote = HttpRemoteStore(HttpTransport(self._config, self._http_session))
            self._remote = remote
            await self._ensure_mqtt_started(remote)
        self._gateway = MutationGateway(self._remote)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        live, self._live = self._live, []
        for collection in live:
            await collection.close()
        self._stop_mqtt()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_remote:
            self._remote = None
        self._gateway = None

    @property
    def config(self) -> FleetConfig:
        return self._config

    @property
    def gateway(self) -> MutationGateway:
        if self._gateway is None:
            raise FleetError("Client not initialized; use 'async with FleetClient(...)'")
        return self._gateway

    def _require_remote(self) -> RemoteStore:
        if self._remote is None:
            raise FleetError("Client not initialized; use 'async with FleetClient(...)'")
        return self._remote

    # ------------------------------------------------------------------
    # MQTT change notifications
    # ------------------------------------------------------------------

    async def _ensure_mqtt_started(self, remote: HttpRemoteStore) -> None:
        """Best-effort MQTT startup; without it views only refresh on open."""
        if not self._config.mqtt_enabled:
            return
        if self._mqtt_runtime is not None and self._mqtt_runtime.is_running:
            return
        loop = asyncio.get_running_loop()
        runtime = FleetMqttRuntime(
            loop=loop,
            topic_prefix=self._config.topic_prefix,
            on_notice=self._on_notice,
            keepalive=self._config.mqtt_keepalive,
            logger=_logger,
        )
        try:
            await loop.run_in_executor(
                None,
                lambda: runtime.start(
                    self._config.mqtt_host,
                    self._config.mqtt_port,
                    tls=self._config.mqtt_tls,
                ),
            )
        except Exception:
            _logger.warning("MQTT startup failed; live views will not receive push updates", exc_info=True)
            return
        self._mqtt_runtime = runtime

    def _stop_mqtt(self) -> None:
        runtime = self._mqtt_runtime
        self._mqtt_runtime = None
        if runtime is not None:
            runtime.stop()

    def _on_notice(self, notice: ChangeNotice) -> None:
        """Handle a change notice (called from the MQTT thread via call_soon_threadsafe)."""
        remote = self._remote
        if isinstance(remote, HttpRemoteStore):
            remote.on_notice(notice)

    # ------------------------------------------------------------------
    # Live views
    # ------------------------------------------------------------------

    async def watch(
        self,
        collection: str,
        *,
        day: date | str | None = None,
        filter: FieldFilter | None = None,
    ) -> LiveCollection:
        """Open a live view; dated collections require *day* or an explicit *filter*."""
        if day is not None:
            if filter is not None:
                raise FleetConfigError("Pass either day or filter, not both")
            filter = FieldFilter.for_day(day)
        if filter is None and collection in DATED_COLLECTIONS:
            raise FleetConfigError(f"{collection} views must be filtered by day")
        live = LiveCollection(self._require_remote(), self.gateway, collection, filter)
        self._live.append(live)
        await live.open()
        return live

    async def open_schedules(self, day: date | str) -> LiveCollection:
        return await self.watch(SCHEDULES, day=day)

    async def open_daily_status(self, day: date | str) -> LiveCollection:
        return await self.watch(DAILY_STATUS, day=day)

    async def open_registry(self, collection: str) -> LiveCollection:
        _registry.registry_model(collection)
        return await self.watch(collection)

    async def release(self, live: LiveCollection) -> None:
        """Close one live view before the client itself exits."""
        if live in self._live:
            self._live.remove(live)
        await live.close()

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------

    async def add_schedule(self, live: LiveCollection, day: date | str, *, name: str | None = None) -> dict[str, Any]:
        return await _schedules.add_schedule(live, day, name=name)

    async def rename_schedule(self, live: LiveCollection, schedule_id: str, name: str) -> None:
        await _schedules.rename_schedule(live, schedule_id, name)

    async def remove_schedule(self, live: LiveCollection, schedule_id: str) -> None:
        await _schedules.remove_schedule(live, schedule_id)

    async def add_vehicle(
        self,
        live: LiveCollection,
        schedule_id: str,
        draft: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        return await _schedules.add_vehicle(live, schedule_id, draft)

    async def remove_vehicle(self, live: LiveCollection, schedule_id: str, vehicle_id: str) -> bool:
        return await _schedules.remove_vehicle(live, schedule_id, vehicle_id)

    async def update_vehicle(
        self,
        live: LiveCollection,
        schedule_id: str,
        vehicle_id: str,
        field: str,
        value: Any,
    ) -> bool:
        return await _schedules.update_vehicle(live, schedule_id, vehicle_id, field, value)

    async def toggle_vehicle_status(self, live: LiveCollection, schedule_id: str, vehicle_id: str) -> bool:
        return await _schedules.toggle_vehicle_status(live, schedule_id, vehicle_id)

    async def complete_vehicle(self, live: LiveCollection, schedule_id: str, vehicle_id: str) -> bool:
        return await _schedules.complete_vehicle(live, schedule_id, vehicle_id)

    async def add_destination(
        self,
        live: LiveCollection,
        schedule_id: str,
        vehicle_id: str,
        draft: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        return await _schedules.add_destination(live, schedule_id, vehicle_id, draft)

    async def remove_destination(
        self,
        live: LiveCollection,
        schedule_id: str,
        vehicle_id: str,
        destination_id: str,
    ) -> bool:
        return await _schedules.remove_destination(live, schedule_id, vehicle_id, destination_id)

    async def update_destination(
        self,
        live: LiveCollection,
        schedule_id: str,
        vehicle_id: str,
        destination_id: str,
        field: str,
        value: Any,
    ) -> bool:
        return await _schedules.update_destination(live, schedule_id, vehicle_id, destination_id, field, value)

    # ------------------------------------------------------------------
    # Daily status
    # ------------------------------------------------------------------

    async def add_status_record(self, live: LiveCollection, day: date | str) -> dict[str, Any]:
        return await _status.add_status_record(live, day)

    async def update_status_record(self, live: LiveCollection, record_id: str, field: str, value: Any) -> bool:
        return await _status.update_status_record(live, record_id, field, value)

    async def remove_status_record(self, live: LiveCollection, record_id: str) -> None:
        await _status.remove_status_record(live, record_id)

    async def import_status_rows(
        self,
        live: LiveCollection,
        rows: Iterable[ImportRow],
        day: date | str,
    ) -> list[dict[str, Any]]:
        return await _status.import_status_rows(live, rows, day)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    async def save_registry_entry(self, live: LiveCollection, draft: Mapping[str, Any]) -> dict[str, Any]:
        return await _registry.save_registry_entry(live, draft)

    async def remove_registry_entry(self, live: LiveCollection, entry_id: str) -> None:
        await _registry.remove_registry_entry(live, entry_id)
