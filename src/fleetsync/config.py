"""Client configuration for fleetsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fleetsync.exceptions import FleetConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class FleetConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Base URL of the document service (no trailing slash).
    project : str
        Project namespace; every collection lives under it.
    api_key : str or None
        Optional bearer key sent as ``Authorization`` header.
    request_timeout : float
        Total HTTP timeout per request, in seconds.
    mqtt_enabled : bool
        Listen for change notifications over MQTT. When disabled,
        subscriptions deliver their initial snapshot only.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_tls : bool
        Use TLS for the MQTT connection.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    api_trace_enabled : bool
        Log redacted request/response bodies at DEBUG level.
    """

    base_url: str = "http://localhost:8080"
    project: str = "default"
    api_key: str | None = None
    request_timeout: float = 15.0
    mqtt_enabled: bool = True
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_tls: bool = False
    mqtt_keepalive: int = 60
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.base_url.strip():
            raise FleetConfigError("base_url must be non-empty")
        if not self.project.strip():
            raise FleetConfigError("project must be non-empty")
        if self.request_timeout <= 0:
            raise FleetConfigError("request_timeout must be positive")

    @property
    def topic_prefix(self) -> str:
        """MQTT topic prefix for change notifications of this project."""
        return f"fleetsync/{self.project}"

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetConfig:
        """Create configuration from ``FLEET_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FLEET_BASE_URL": "base_url",
            "FLEET_PROJECT": "project",
            "FLEET_API_KEY": "api_key",
            "FLEET_MQTT_HOST": "mqtt_host",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            timeout_env = env.get("FLEET_REQUEST_TIMEOUT")
            if timeout_env is not None and "request_timeout" not in overrides:
                config_kwargs["request_timeout"] = float(timeout_env)

            port_env = env.get("FLEET_MQTT_PORT")
            if port_env is not None and "mqtt_port" not in overrides:
                config_kwargs["mqtt_port"] = int(port_env)

            keepalive_env = env.get("FLEET_MQTT_KEEPALIVE")
            if keepalive_env is not None and "mqtt_keepalive" not in overrides:
                config_kwargs["mqtt_keepalive"] = int(keepalive_env)
        except ValueError as exc:
            raise FleetConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("FLEET_MQTT_ENABLED"), True)
        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("FLEET_MQTT_TLS"), False)
        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("FLEET_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
