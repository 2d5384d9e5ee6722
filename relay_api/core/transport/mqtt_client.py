"""Cliente MQTT para recepción de telemetría y publicación de comandos."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, Optional, Sequence

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, bytes], None]


class MQTTClient:
    """Cliente MQTT ligero.

    Responsabilidades:
    - Conexión/desconexión al broker (la reconexión la gestiona paho)
    - Suscripción a los topics del horno
    - Delegación de mensajes al handler
    - Publicación de vuelta (acciones de operador)
    """

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        topics: Sequence[str] = (),
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_prefix: str = "furnace-relay",
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topics = tuple(topics)
        self.username = username
        self.password = password
        # clientId aleatorio para no chocar con los equipos de planta
        self.client_id = f"{client_prefix}-{uuid.uuid4().hex[:8]}"

        self._client: Optional[mqtt.Client] = None
        self._connected = threading.Event()
        self._message_handler: Optional[MessageCallback] = None
        self._reconnect_count = 0

    def set_message_handler(self, handler: MessageCallback) -> None:
        """Configura el handler de mensajes."""
        self._message_handler = handler

    def connect(self, wait_seconds: float = 5.0) -> bool:
        """Arranca el loop de red. False si no conecta dentro de ``wait_seconds``.

        Un False no es fatal: paho sigue reintentando en segundo plano.
        """
        self._client = mqtt.Client(
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            clean_session=True,
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message
        self._client.reconnect_delay_set(min_delay=1, max_delay=30)

        if self.username and self.password:
            self._client.username_pw_set(self.username, self.password)

        logger.info(
            "[MQTT] Connecting to %s:%d client_id=%s",
            self.broker_host,
            self.broker_port,
            self.client_id,
        )
        try:
            self._client.connect_async(self.broker_host, self.broker_port, keepalive=60)
            self._client.loop_start()
        except Exception as e:
            logger.exception("[MQTT] Connection setup failed: %s", e)
            return False

        if self._connected.wait(wait_seconds):
            return True
        logger.error("[MQTT] Connection timeout, retrying in background")
        return False

    def disconnect(self) -> None:
        """Desconecta del broker."""
        if self._client:
            try:
                self._client.disconnect()
                self._client.loop_stop()
            except Exception as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected.clear()

    def publish(self, topic: str, payload: str, qos: int = 0) -> bool:
        """Publica en el broker. False si no hay conexión o paho rechaza."""
        if self._client is None or not self._connected.is_set():
            logger.warning("[MQTT] Publish skipped, not connected topic=%s", topic)
            return False
        result = self._client.publish(topic, payload, qos=qos)
        ok = result.rc == mqtt.MQTT_ERR_SUCCESS
        if ok:
            logger.info("[MQTT] Published to %s: %s", topic, payload)
        else:
            logger.warning("[MQTT] Publish failed rc=%s topic=%s", result.rc, topic)
        return ok

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        """Callback de conexión."""
        if rc == 0:
            self._connected.set()
            if self._reconnect_count:
                logger.info("[MQTT] Reconnected to broker (disconnects=%d)", self._reconnect_count)
            else:
                logger.info("[MQTT] Connected to broker")
            for topic in self.topics:
                client.subscribe(topic, qos=0)
                logger.info("[MQTT] Subscribed to %s", topic)
        else:
            self._connected.clear()
            logger.error("[MQTT] Connection failed: rc=%s", rc)

    def _on_disconnect(self, client, userdata, flags, rc, properties=None):
        """Callback de desconexión."""
        self._connected.clear()
        self._reconnect_count += 1
        logger.warning("[MQTT] Disconnected (rc=%s)", rc)

    def _on_message(self, client, userdata, msg):
        """Callback de mensaje - delega al handler."""
        if self._message_handler:
            self._message_handler(msg.topic, msg.payload)

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    @property
    def stats(self) -> dict:
        return {
            "connected": self.is_connected,
            "broker": f"{self.broker_host}:{self.broker_port}",
            "client_id": self.client_id,
            "topics": list(self.topics),
            "reconnect_count": self._reconnect_count,
        }
