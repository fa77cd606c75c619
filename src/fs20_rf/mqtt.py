#!/usr/bin/env python3
"""FS20 RF - an automation bus via an MQTT broker.

Events are published to '<base>/<item_name>/state' (retained) and to
'<base>/<item_name>/command', and commands are accepted from '<base>/<item_name>/set',
e.g. 'FS20/Lamp1/set' with a payload of 'ON', 'TOGGLE' or '50'.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import parse_qs, unquote, urlparse

from paho.mqtt import MQTTException, client as mqtt

from fs20_tx import parse_command

from . import exceptions as exc
from .events import CommandT, StateT

if TYPE_CHECKING:
    from .gateway import Gateway


SZ_FS20: Final = "FS20"

SZ_COMMAND: Final = "command"
SZ_SET: Final = "set"
SZ_STATE: Final = "state"

_DEFAULT_PORT: Final = 1883
_KEEPALIVE: Final = 60

_LOGGER = logging.getLogger(__name__)


def validate_topic_path(path: str) -> str:
    """Return the base topic from a URL path, e.g. '/home/FS20' is 'home/FS20'."""

    new_path = path.strip("/") or SZ_FS20
    if "+" in new_path or "#" in new_path:
        raise ValueError(f"Invalid topic path (has wildcards): {path}")
    return new_path


class MqttBus:
    """An event publisher (and command source) via an MQTT broker.

    Usage: mqtt://[user:password@]host[:port][/base/topic][?qos=1]
    """

    def __init__(self, broker_url: str, gwy: Gateway | None = None) -> None:
        self._broker_url = urlparse(broker_url)
        if self._broker_url.scheme != "mqtt" or not self._broker_url.hostname:
            raise ValueError(f"Invalid broker URL: {broker_url}")

        self._username = unquote(self._broker_url.username or "")
        self._password = unquote(self._broker_url.password or "")

        self._topic_base = validate_topic_path(self._broker_url.path)
        self._mqtt_qos = int(parse_qs(self._broker_url.query).get("qos", ["0"])[0])

        self._gwy = gwy
        self._connected = False

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        if self._username:
            self.client.username_pw_set(self._username, self._password)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._broker_url.hostname}/{self._topic_base})"

    @property
    def topic_base(self) -> str:
        return self._topic_base

    def attach(self, gwy: Gateway) -> None:
        """Set the gateway that is to send the commands received from the broker."""
        self._gwy = gwy

    def start(self) -> None:
        """Connect to the broker (asynchronously) and start its network loop."""

        self.client.connect_async(
            self._broker_url.hostname,  # type: ignore[arg-type]
            self._broker_url.port or _DEFAULT_PORT,
            _KEEPALIVE,
        )
        self.client.loop_start()

    def stop(self) -> None:
        """Disconnect from the broker, and stop its network loop."""

        self._connected = False
        self.client.disconnect()
        self.client.loop_stop()

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any | None,
        flags: mqtt.ConnectFlags,
        reason_code: mqtt.ReasonCode,
        properties: mqtt.Properties | None,
    ) -> None:
        if reason_code.is_failure:
            _LOGGER.error("%s: Failed to connect: %s", self, reason_code)
            return

        self._connected = True
        self.client.subscribe(f"{self._topic_base}/+/{SZ_SET}", qos=self._mqtt_qos)

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any | None,
        flags: mqtt.DisconnectFlags,
        reason_code: mqtt.ReasonCode,
        properties: mqtt.Properties | None,
    ) -> None:
        if self._connected:  # otherwise, is expected
            _LOGGER.error("%s: Disconnected with reason code %s", self, reason_code)
        self._connected = False

    def _on_message(
        self, client: mqtt.Client, userdata: Any | None, msg: mqtt.MQTTMessage
    ) -> None:
        """Turn a message from the broker into a command for the bound item."""

        if _LOGGER.getEffectiveLevel() == logging.INFO:  # log for INFO not DEBUG
            _LOGGER.info("Rx: %s %s", msg.topic, msg.payload)

        base, _, tail = msg.topic.rpartition("/")
        item_name = base[len(self._topic_base) + 1 :]

        if tail != SZ_SET or not item_name or "/" in item_name:
            _LOGGER.debug("%s < Unexpected topic (ignoring)", msg.topic)
            return

        try:
            command = parse_command(msg.payload.decode("utf-8"))
        except (UnicodeDecodeError, exc.UnsupportedCommand) as err:
            _LOGGER.warning("%s < Invalid command %s: %s", msg.topic, msg.payload, err)
            return

        if self._gwy is None:
            _LOGGER.warning("%s < There is no gateway (ignoring)", msg.topic)
            return

        self._gwy.send_command(item_name, command)  # NOTE: not the event loop thread

    def _publish(self, topic: str, payload: str, retain: bool = False) -> None:
        if _LOGGER.getEffectiveLevel() == logging.INFO:  # log for INFO not DEBUG
            _LOGGER.info("Tx: %s %s", topic, payload)

        try:
            self.client.publish(topic, payload=payload, qos=self._mqtt_qos, retain=retain)
        except MQTTException as err:
            _LOGGER.error("%s: Failed to publish to %s: %s", self, topic, err)

    def publish_state(self, item_name: str, state: StateT) -> None:
        self._publish(f"{self._topic_base}/{item_name}/{SZ_STATE}", str(state), True)

    def publish_command(self, item_name: str, command: CommandT) -> None:
        self._publish(f"{self._topic_base}/{item_name}/{SZ_COMMAND}", str(command))
