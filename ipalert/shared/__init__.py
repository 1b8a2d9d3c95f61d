"""Shared utilities for IP Alert."""

from .config import load_yaml_config, get_config_path
from .mqtt import MQTTConfig
from .logging import setup_logging

__all__ = [
    "load_yaml_config",
    "get_config_path",
    "MQTTConfig",
    "setup_logging",
]
