"""Presentation sinks for display text and notifications."""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ipalert.shared.mqtt import MQTTConfig, create_event_payload

from .config import MonitorConfig

logger = logging.getLogger(__name__)


class PresentationSink(ABC):
    """Where the monitor shows its state."""

    @abstractmethod
    def set_display_text(self, text: str) -> None:
        """Replace the persistent status text."""
        pass

    @abstractmethod
    def show_notification(self, title: str, body: str, duration_ms: int) -> None:
        """Show a transient notification."""
        pass

    def close(self) -> None:
        """Release any resources held by the sink."""
        pass


class ConsoleSink(PresentationSink):
    """Terminal sink using Rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.display_text: Optional[str] = None

    def set_display_text(self, text: str) -> None:
        self.display_text = text
        timestamp = datetime.now().strftime("%H:%M:%S")
        line = Text.assemble((f"[{timestamp}] ", "dim"), (text, "bold cyan"))
        self.console.print(line)

    def show_notification(self, title: str, body: str, duration_ms: int) -> None:
        self.console.print(
            Panel(
                Text(body.strip() or title, justify="center"),
                title=title,
                border_style="yellow",
                expand=False,
            )
        )


class MQTTSink(PresentationSink):
    """Publishes display text and notifications to an MQTT broker.

    Display text goes to ``{topic}/display`` as a retained message so new
    subscribers see the current state; notifications go to
    ``{topic}/notification`` as JSON.
    """

    def __init__(self, config: MQTTConfig, topic: str = "ipalert"):
        """Initialize MQTT sink.

        Args:
            config: MQTT configuration.
            topic: Base topic for published messages.
        """
        self.config = config
        self.topic = topic.rstrip("/")
        self.client: Optional[mqtt.Client] = None
        self._connected = False
        self._connect_event = threading.Event()

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Handle connection to broker."""
        if reason_code == 0:
            logger.info(
                f"Connected to MQTT broker at {self.config.broker}:{self.config.port}"
            )
            self._connected = True
        else:
            logger.error(f"Failed to connect to MQTT broker: {reason_code}")
            self._connected = False
        self._connect_event.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        """Handle disconnection from broker."""
        self._connected = False
        if reason_code != 0:
            logger.warning(f"Unexpected MQTT disconnection (reason={reason_code})")
        else:
            logger.info("Disconnected from MQTT broker")

    def connect(self, timeout: float = 10.0) -> bool:
        """Connect to the MQTT broker.

        Args:
            timeout: Timeout in seconds to wait for connection.

        Returns:
            True if connected successfully, False otherwise.
        """
        self._connect_event.clear()

        self.client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=self.config.client_id,
        )
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        logger.info(
            f"Connecting to MQTT broker at {self.config.broker}:{self.config.port}"
        )

        try:
            self.client.connect(
                self.config.broker, self.config.port, keepalive=self.config.keepalive
            )
            self.client.loop_start()

            if self._connect_event.wait(timeout=timeout):
                return self._connected
            logger.error("Timeout waiting for MQTT connection")
            return False
        except Exception as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return False

    @property
    def is_connected(self) -> bool:
        """Check if connected to MQTT broker."""
        return self._connected

    def _publish(self, subtopic: str, payload: str, retain: bool = False) -> None:
        if not self._connected or not self.client:
            logger.warning("Not connected to MQTT broker, cannot publish")
            return

        topic = f"{self.topic}/{subtopic}"
        result = self.client.publish(topic, payload, qos=self.config.qos, retain=retain)
        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            logger.debug(f"Published to {topic}: {payload}")
        else:
            logger.warning(f"Failed to publish to {topic}: rc={result.rc}")

    def set_display_text(self, text: str) -> None:
        self._publish("display", text, retain=True)

    def show_notification(self, title: str, body: str, duration_ms: int) -> None:
        self._publish("notification", create_event_payload(title, body, duration_ms))

    def close(self) -> None:
        """Disconnect from the MQTT broker."""
        if self.client:
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None
            self._connected = False


class CompositeSink(PresentationSink):
    """Forwards every call to several sinks."""

    def __init__(self, sinks: Iterable[PresentationSink]):
        self.sinks: List[PresentationSink] = list(sinks)

    def set_display_text(self, text: str) -> None:
        for sink in self.sinks:
            sink.set_display_text(text)

    def show_notification(self, title: str, body: str, duration_ms: int) -> None:
        for sink in self.sinks:
            sink.show_notification(title, body, duration_ms)

    def close(self) -> None:
        for sink in self.sinks:
            sink.close()


def create_sink(config: MonitorConfig) -> PresentationSink:
    """Build the sinks named in the configuration."""
    sinks: List[PresentationSink] = []
    for name in config.sinks:
        if name == "console":
            sinks.append(ConsoleSink())
        elif name == "mqtt":
            sink = MQTTSink(config.mqtt, config.mqtt_topic)
            sink.connect()
            sinks.append(sink)

    if len(sinks) == 1:
        return sinks[0]
    return CompositeSink(sinks)
