"""Internal MQTT runtime for remote change notifications.

The document service publishes a small JSON notice on
``fleetsync/{project}/{collection}`` after every committed write. Notices
carry no document data; receivers refetch the snapshots they care about.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, cast

import paho.mqtt.client as mqtt


@dataclass(frozen=True)
class ChangeNotice:
    """Parsed change notification for one collection."""

    collection: str
    topic: str
    doc_ids: tuple[str, ...] = ()
    payload: dict[str, Any] = field(default_factory=dict)


def parse_change_notice(topic: str, payload: bytes, topic_prefix: str) -> ChangeNotice | None:
    """Parse a notice; returns ``None`` for topics outside *topic_prefix*.

    A malformed body still counts as a notice for the topic's collection:
    the collection changed, we just do not know which documents.
    """
    prefix = f"{topic_prefix.rstrip('/')}/"
    if not topic.startswith(prefix):
        return None
    collection = topic[len(prefix) :]
    if not collection or "/" in collection:
        return None

    body: dict[str, Any] = {}
    if payload.strip():
        try:
            decoded = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            decoded = None
        if isinstance(decoded, dict):
            body = decoded

    raw_ids = body.get("ids")
    doc_ids: tuple[str, ...] = ()
    if isinstance(raw_ids, list):
        doc_ids = tuple(str(item) for item in raw_ids if isinstance(item, (str, int)))
    return ChangeNotice(collection=collection, topic=topic, doc_ids=doc_ids, payload=body)


class FleetMqttRuntime:
    """Threaded paho-mqtt runtime that emits change notices onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        topic_prefix: str,
        on_notice: Callable[[ChangeNotice], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._topic_prefix = topic_prefix.rstrip("/")
        self._on_notice = on_notice
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def topic(self) -> str:
        return f"{self._topic_prefix}/+"

    def handle_message(self, topic: str, payload: bytes) -> None:
        """Parse one message and hand it to the loop (called on the network thread)."""
        notice = parse_change_notice(topic, payload, self._topic_prefix)
        if notice is None:
            self._logger.debug("Ignoring MQTT message on topic=%s", topic)
            return
        self._loop.call_soon_threadsafe(self._on_notice, notice)

    def start(
        self,
        host: str,
        port: int,
        *,
        tls: bool = False,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        """Connect and subscribe to every collection topic of the project."""
        self.stop()
        self._logger.debug("MQTT runtime start requested host=%s port=%s topic=%s", host, port, self.topic)

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if username is not None:
            client.username_pw_set(username, password)
        if tls:
            client.tls_set()

        topic = self.topic

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected, subscribing topic=%s", topic)
            c.subscribe(topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                self.handle_message(msg.topic, msg.payload)
            except Exception:
                self._logger.debug("MQTT notice dispatch failure", exc_info=True)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(host, port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
