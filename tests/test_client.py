from __future__ import annotations

from typing import Any

import pytest

from fleetsync.client import FleetClient
from fleetsync.config import FleetConfig
from fleetsync.exceptions import FleetError
from fleetsync.memory import MemoryRemoteStore
from fleetsync.remote import HttpRemoteStore


@pytest.mark.asyncio
async def test_exit_closes_every_live_view() -> None:
    remote = MemoryRemoteStore()
    async with FleetClient(remote=remote) as client:
        await client.open_schedules("2024-05-02")
        await client.open_daily_status("2024-05-02")
        drivers = await client.open_registry("drivers")
        await client.release(drivers)
        assert drivers.is_alive is False
        assert remote.subscription_count == 2

    assert remote.subscription_count == 0


@pytest.mark.asyncio
async def test_gateway_requires_context() -> None:
    client = FleetClient(remote=MemoryRemoteStore())
    with pytest.raises(FleetError):
        _ = client.gateway


@pytest.mark.asyncio
async def test_http_stack_without_mqtt(monkeypatch: pytest.MonkeyPatch) -> None:
    started: list[Any] = []
    monkeypatch.setattr("fleetsync._mqtt.FleetMqttRuntime.start", lambda self, *a, **kw: started.append(a))

    config = FleetConfig(mqtt_enabled=False)
    async with FleetClient(config) as client:
        assert isinstance(client._remote, HttpRemoteStore)  # type: ignore[attr-defined]
        assert client._mqtt_runtime is None  # type: ignore[attr-defined]
    assert started == []


@pytest.mark.asyncio
async def test_mqtt_startup_failure_is_not_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(self: Any, *_args: Any, **_kwargs: Any) -> None:
        raise ConnectionRefusedError("broker down")

    monkeypatch.setattr("fleetsync._mqtt.FleetMqttRuntime.start", _refuse)

    async with FleetClient(FleetConfig(mqtt_enabled=True)) as client:
        assert client._mqtt_runtime is None  # type: ignore[attr-defined]
        assert client.gateway is not None


@pytest.mark.asyncio
async def test_mqtt_runtime_started_and_stopped(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    def _start(self: Any, host: str, port: int, **_kwargs: Any) -> None:
        calls.append(f"start {host}:{port}")
        self._running = True

    def _stop(self: Any) -> None:
        calls.append("stop")
        self._running = False

    monkeypatch.setattr("fleetsync._mqtt.FleetMqttRuntime.start", _start)
    monkeypatch.setattr("fleetsync._mqtt.FleetMqttRuntime.stop", _stop)

    async with FleetClient(FleetConfig(mqtt_host="broker", mqtt_port=1884)) as client:
        assert client._mqtt_runtime is not None  # type: ignore[attr-defined]
        assert client._mqtt_runtime.topic == "fleetsync/default/+"  # type: ignore[attr-defined]

    assert calls == ["start broker:1884", "stop"]
