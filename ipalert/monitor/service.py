"""IP Alert service - wires the monitor together and runs it."""

import asyncio
import logging
import signal
from typing import Optional

from .config import MonitorConfig
from .coordinator import MonitorCoordinator
from .fetcher import AddressFetcher
from .sinks import PresentationSink, create_sink

logger = logging.getLogger(__name__)


class MonitorService:
    """Service that watches the public address until told to stop."""

    def __init__(self, config: MonitorConfig):
        self.config = config
        self.coordinator: Optional[MonitorCoordinator] = None
        self._stop_event: Optional[asyncio.Event] = None

    def _build_coordinator(self, fetcher: AddressFetcher) -> MonitorCoordinator:
        sink: PresentationSink = create_sink(self.config)
        return MonitorCoordinator(
            self.config,
            fetcher,
            sink,
            logger=logging.getLogger("ipalert.monitor"),
        )

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform; KeyboardInterrupt still works
                logger.debug(f"Signal handler for {sig.name} not installed")

    def stop(self) -> None:
        """Ask the run loop to exit."""
        if self._stop_event is not None:
            self._stop_event.set()

    async def run_loop(self) -> None:
        """Start monitoring and wait until stopped."""
        self._stop_event = asyncio.Event()
        self._install_signal_handlers()

        logger.info(
            f"Starting IP Alert (mode={self.config.mode.value}, "
            f"interval={self.config.polling_interval_ms}ms, "
            f"endpoint={self.config.fetch.endpoint})"
        )

        async with AddressFetcher(self.config.fetch) as fetcher:
            self.coordinator = self._build_coordinator(fetcher)
            try:
                await self.coordinator.start()
                await self._stop_event.wait()
            finally:
                self.coordinator.close()

    def run(self) -> None:
        """Start the monitoring service.

        Shutdown of the coordinator happens inside run_loop, while the
        event loop is still open.
        """
        try:
            asyncio.run(self.run_loop())
        except KeyboardInterrupt:
            logger.info("Shutting down IP Alert...")
