import json
import logging
import time
from enum import Enum
from typing import Any, Optional, Protocol

import paho.mqtt.client as paho

logger = logging.getLogger(__name__)


class OutboundPublisher(Protocol):
    def publish(self, topic: str, payload: str) -> bool: ...

    def close(self) -> None: ...


class MQTTPublisher(OutboundPublisher):
    """Thin paho-mqtt wrapper that publishes pushed values to a broker.

    The connection is opened on construction and kept alive by paho's network
    loop thread, which also reconnects after a drop.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 60,
        qos: int = 1,
        retain: bool = True,
    ):
        self.host = host
        self.port = port
        self.client_id = client_id
        self.keepalive = keepalive
        self.qos = qos
        self.retain = retain

        self._connected = False
        self._disconnected_rc: Optional[Any] = None

        self._client = paho.Client(
            paho.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=True,
            protocol=paho.MQTTv311,
        )
        self._client.on_publish = self._on_publish
        self._client.on_disconnect = self._on_disconnect
        self._client.on_connect = self._on_connect

        if username and password:
            self._client.username_pw_set(username, password)

        logger.info(
            "Initializing MQTT publisher: host=%s, port=%s, client_id=%s",
            host,
            port,
            client_id,
        )

        self._connect()

    def _connect(self) -> None:
        """Connect to the MQTT broker."""
        try:
            result = self._client.connect(self.host, self.port, self.keepalive)
            if result != paho.MQTT_ERR_SUCCESS:
                logger.error("Failed to connect to MQTT broker: %s", result)
                return

            self._client.loop_start()
            logger.info("Connected to MQTT broker")
        except (OSError, ValueError) as e:
            logger.error("Exception during MQTT connection: %s", e)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code == 0:
            self._connected = True
            logger.info("Successfully connected to MQTT broker")
        else:
            self._connected = False
            logger.error("Failed to connect to MQTT broker, reason code: %s", reason_code)

    def _on_publish(self, client, userdata, mid, reason_code=None, properties=None) -> None:
        logger.debug("Publish acknowledged for message ID: %s", mid)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._connected = False
        self._disconnected_rc = reason_code
        logger.warning("Disconnected from MQTT broker, reason code: %s", reason_code)

    def publish(self, topic: str, payload: str) -> bool:
        """Queue a payload for the topic. Does not wait for the broker's ack."""
        if not self._connected:
            logger.warning("Not connected to MQTT broker, dropping payload for %s", topic)
            return False

        info = self._client.publish(topic, payload, qos=self.qos, retain=self.retain)
        if info.rc != paho.MQTT_ERR_SUCCESS:
            logger.error("Failed to publish message to %s, error code: %s", topic, info.rc)
            return False

        logger.debug("Message published to %s with ID: %s", topic, info.mid)
        return True

    def is_connected(self) -> bool:
        return self._connected

    def get_disconnect_reason(self) -> Optional[Any]:
        return self._disconnected_rc

    def close(self) -> None:
        logger.info("Closing MQTT connection")
        self._client.loop_stop()
        self._client.disconnect()
        self._connected = False


class MQTTPushSink:
    """Push sink publishing every value to ``<prefix>/<accessory uuid>/<field>``."""

    def __init__(self, publisher: OutboundPublisher, prefix: str = "airgradient"):
        self.publisher = publisher
        self.prefix = prefix.rstrip("/")

    def topic_for(self, accessory_uuid: str, field: str) -> str:
        return f"{self.prefix}/{accessory_uuid}/{field}"

    def __call__(self, accessory_uuid: str, field: str, value: Any) -> None:
        message = {"value": int(value) if isinstance(value, Enum) else value, "ts": time.time()}
        if isinstance(value, Enum):
            message["state"] = value.name
        ok = self.publisher.publish(self.topic_for(accessory_uuid, field), json.dumps(message))
        if not ok:
            logger.warning("Could not publish %s for %s", field, accessory_uuid)

    def close(self) -> None:
        self.publisher.close()
