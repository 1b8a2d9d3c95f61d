"""Configuration for the IP Alert monitor."""

import dataclasses
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ipalert.shared.config import get_config_path, load_yaml_config
from ipalert.shared.mqtt import MQTTConfig


class ConfigError(ValueError):
    """Configuration file content is invalid."""


class MonitorMode(Enum):
    """How checks are triggered."""
    AUTO = "auto"  # On network topology changes
    TIMED = "timed"  # On a fixed polling interval

    @classmethod
    def parse(cls, value: Any) -> "MonitorMode":
        """Parse a mode name, case-insensitively."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "onnetworkchanges":
            return cls.AUTO
        try:
            return cls(name)
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ConfigError(f"Invalid mode '{value}' (expected one of: {choices})")


REQUIRED_KEYS = (
    "notifications_enabled",
    "notification_duration_ms",
    "mode",
    "polling_interval_ms",
)

SINK_NAMES = ("console", "mqtt")


@dataclass(frozen=True)
class FetchConfig:
    """Settings for public address lookups."""

    endpoint: str = "https://api.ipify.org"
    max_attempts: int = 3
    retry_delay_ms: int = 1000
    request_timeout_ms: int = 10000

    @classmethod
    def from_dict(cls, data: dict) -> "FetchConfig":
        """Create config from dictionary, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        extra = sorted(set(data) - known)
        if extra:
            raise ConfigError(f"Unexpected fetch properties found: {', '.join(extra)}")

        config = cls(
            endpoint=data.get("endpoint", "https://api.ipify.org"),
            max_attempts=data.get("max_attempts", 3),
            retry_delay_ms=data.get("retry_delay_ms", 1000),
            request_timeout_ms=data.get("request_timeout_ms", 10000),
        )
        errors = []
        if not isinstance(config.endpoint, str) or not config.endpoint:
            errors.append("fetch.endpoint must be a non-empty string")
        for name, minimum in (
            ("max_attempts", 1),
            ("retry_delay_ms", 0),
            ("request_timeout_ms", 1),
        ):
            value = getattr(config, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                errors.append(f"fetch.{name} must be an integer >= {minimum}")
        if errors:
            raise ConfigError("\n".join(errors))
        return config


@dataclass(frozen=True)
class MonitorConfig:
    """Configuration for the address monitor."""

    # Core behaviour
    notifications_enabled: bool = True
    notification_duration_ms: int = 5000
    mode: MonitorMode = MonitorMode.AUTO
    polling_interval_ms: int = 1000

    # Re-checks after an externally triggered change
    follow_up_short_ms: int = 5000
    follow_up_long_ms: int = 15000

    # Interface sampling in auto mode
    watch_interval_ms: int = 2000

    fetch: FetchConfig = field(default_factory=FetchConfig)

    # Presentation
    sinks: Tuple[str, ...] = ("console",)
    mqtt: MQTTConfig = field(default_factory=MQTTConfig)
    mqtt_topic: str = "ipalert"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        errors = self._validate()
        if errors:
            raise ConfigError("\n".join(errors))

    def _validate(self) -> List[str]:
        errors = []
        if not isinstance(self.mode, MonitorMode):
            errors.append(f"Invalid mode: {self.mode!r}")
        if not isinstance(self.notifications_enabled, bool):
            errors.append("notifications_enabled must be true or false")
        for name in (
            "notification_duration_ms",
            "polling_interval_ms",
            "follow_up_short_ms",
            "follow_up_long_ms",
            "watch_interval_ms",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors.append(f"{name} must be a non-negative integer")
        if (
            self.mode is MonitorMode.TIMED
            and isinstance(self.polling_interval_ms, int)
            and self.polling_interval_ms <= 0
        ):
            errors.append("polling_interval_ms must be > 0 in timed mode")
        if self.watch_interval_ms == 0:
            errors.append("watch_interval_ms must be > 0")
        if not isinstance(self.mqtt_topic, str) or not self.mqtt_topic:
            errors.append("mqtt_topic must be a non-empty string")
        for sink in self.sinks:
            if sink not in SINK_NAMES:
                errors.append(f"Unknown sink '{sink}' (expected: {', '.join(SINK_NAMES)})")
        return errors

    @property
    def polling_interval(self) -> float:
        """Polling interval (and settle delay) in seconds."""
        return self.polling_interval_ms / 1000.0

    @classmethod
    def from_dict(cls, data: dict) -> "MonitorConfig":
        """Create config from dictionary.

        All required keys must be present and unknown keys are rejected;
        every problem is reported in a single ConfigError.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        errors = []

        missing = [key for key in REQUIRED_KEYS if key not in data]
        if missing:
            errors.append(f"Missing required properties: {', '.join(missing)}")

        extra = sorted(set(data) - known)
        if extra:
            errors.append(f"Unexpected properties found: {', '.join(extra)}")

        for section in ("fetch", "mqtt"):
            if not isinstance(data.get(section) or {}, dict):
                errors.append(f"{section} must be a mapping")

        sinks = data.get("sinks", ["console"])
        if isinstance(sinks, str):
            sinks = [sinks]
        elif not isinstance(sinks, (list, tuple)):
            errors.append("sinks must be a sink name or a list of sink names")

        if errors:
            raise ConfigError("\n".join(errors))

        return cls(
            notifications_enabled=data["notifications_enabled"],
            notification_duration_ms=data["notification_duration_ms"],
            mode=MonitorMode.parse(data["mode"]),
            polling_interval_ms=data["polling_interval_ms"],
            follow_up_short_ms=data.get("follow_up_short_ms", 5000),
            follow_up_long_ms=data.get("follow_up_long_ms", 15000),
            watch_interval_ms=data.get("watch_interval_ms", 2000),
            fetch=FetchConfig.from_dict(data.get("fetch") or {}),
            sinks=tuple(str(s).lower() for s in sinks),
            mqtt=MQTTConfig.from_dict(data.get("mqtt") or {}),
            mqtt_topic=data.get("mqtt_topic", "ipalert"),
            log_level=str(data.get("log_level", "INFO")).upper(),
            log_file=data.get("log_file"),
        )


def load_config(config_path: Optional[Union[str, Path]] = None) -> MonitorConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to YAML config file. If not provided, looks for
                    the IPALERT_CONFIG env var, then the default config path.

    Returns:
        MonitorConfig instance.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigError: If the file content is invalid.
    """
    if config_path is None:
        config_path = os.environ.get("IPALERT_CONFIG") or get_config_path()

    data = load_yaml_config(config_path)
    config = MonitorConfig.from_dict(data)

    # Environment variable overrides
    overrides: Dict[str, Any] = {}
    if log_level := os.environ.get("LOG_LEVEL"):
        overrides["log_level"] = log_level.upper()
    if mqtt_broker := os.environ.get("MQTT_BROKER"):
        overrides["mqtt"] = dataclasses.replace(config.mqtt, broker=mqtt_broker)

    if overrides:
        config = dataclasses.replace(config, **overrides)
    return config
