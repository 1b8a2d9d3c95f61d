"""IP Alert monitor - watches the public address and reports changes."""

import logging
import sys

import yaml

from .config import ConfigError, MonitorConfig, MonitorMode, load_config
from .coordinator import CheckOutcome, MonitorCoordinator
from .fetcher import NO_CONNECTION, AddressFetcher, FetchResult
from .service import MonitorService


def main():
    """Entry point for the IP Alert service."""
    from ipalert.shared.logging import setup_logging

    try:
        config = load_config()
    except (FileNotFoundError, ConfigError, yaml.YAMLError) as e:
        setup_logging()
        logging.getLogger(__name__).error(f"Could not load configuration: {e}")
        sys.exit(1)

    setup_logging(config.log_level, log_file=config.log_file)
    logging.getLogger(__name__).info("Starting IP Alert application")

    service = MonitorService(config)
    service.run()


__all__ = [
    "AddressFetcher",
    "CheckOutcome",
    "ConfigError",
    "FetchResult",
    "MonitorConfig",
    "MonitorCoordinator",
    "MonitorMode",
    "MonitorService",
    "NO_CONNECTION",
    "load_config",
    "main",
]
