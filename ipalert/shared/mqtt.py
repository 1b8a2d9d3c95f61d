"""MQTT configuration and utilities."""

import json
import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""
    broker: str = "localhost"
    port: int = 1883
    client_id: str = "ipalert"
    keepalive: int = 60
    qos: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "MQTTConfig":
        """Create config from dictionary."""
        return cls(
            broker=data.get("broker", "localhost"),
            port=data.get("port", 1883),
            client_id=data.get("client_id", "ipalert"),
            keepalive=data.get("keepalive", 60),
            qos=data.get("qos", 1),
        )


def create_event_payload(
    title: str,
    body: str,
    duration_ms: int,
    timestamp: Optional[float] = None,
) -> str:
    """Create a standardized MQTT payload for a notification.

    Args:
        title: Notification title.
        body: Notification body text (may be empty).
        duration_ms: How long a client should show the notification.
        timestamp: Unix timestamp (defaults to current time).

    Returns:
        JSON string payload.
    """
    return json.dumps({
        "title": title,
        "body": body,
        "duration_ms": duration_ms,
        "ts": timestamp or time.time(),
    })
