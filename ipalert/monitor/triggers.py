"""Trigger sources that decide when an address check runs."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, FrozenSet, List, Optional, Protocol, Tuple

import psutil

from .config import MonitorConfig, MonitorMode
from .timers import RepeatingTimer

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class NetworkChangeSource(Protocol):
    """Delivers a zero-argument signal when the network topology changes."""

    def subscribe(self, callback: Callback) -> None:
        ...

    def unsubscribe(self, callback: Callback) -> None:
        ...


class InterfaceWatcher:
    """Network change source backed by psutil interface addresses.

    Samples ``psutil.net_if_addrs()`` every ``interval_ms`` while there are
    subscribers and signals every subscriber when the set of
    (interface, family, address) entries differs from the previous sample.
    """

    def __init__(self, interval_ms: int = 2000):
        self.interval = interval_ms / 1000.0
        self._callbacks: List[Callback] = []
        self._snapshot: FrozenSet[Tuple[str, int, str]] = frozenset()
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def take_snapshot() -> FrozenSet[Tuple[str, int, str]]:
        """Current interface addresses as a comparable set."""
        entries = set()
        for iface, addrs in psutil.net_if_addrs().items():
            for addr in addrs:
                entries.add((iface, int(addr.family), addr.address))
        return frozenset(entries)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, callback: Callback) -> None:
        """Register a callback and start sampling if needed.

        The baseline snapshot is taken synchronously so that a failure to
        read interfaces surfaces here.
        """
        if not self._callbacks:
            self._snapshot = self.take_snapshot()
            self._task = asyncio.get_running_loop().create_task(self._watch_loop())
            logger.debug(f"Watching {len(self._snapshot)} interface addresses")
        self._callbacks.append(callback)

    def unsubscribe(self, callback: Callback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)
        if not self._callbacks and self._task is not None:
            self._task.cancel()
            self._task = None

    def poll(self) -> bool:
        """Take one sample and signal subscribers if it changed.

        Returns:
            True if the interface addresses changed.
        """
        current = self.take_snapshot()
        if current == self._snapshot:
            return False

        added = len(current - self._snapshot)
        removed = len(self._snapshot - current)
        logger.debug(f"Interface addresses changed (+{added}/-{removed})")
        self._snapshot = current

        for callback in list(self._callbacks):
            try:
                callback()
            except Exception:
                logger.exception("Network change callback failed")
        return True

    async def _watch_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.poll()
            except Exception as e:
                logger.error(f"Could not read network interfaces: {e}")


class TriggerSource(ABC):
    """Something that asks the coordinator to check the address."""

    # Whether checks from this trigger arm the follow-up timers
    follows_up: bool = False

    @abstractmethod
    def start(self, callback: Callback) -> None:
        """Begin delivering triggers to ``callback``."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering triggers. Safe to call more than once."""
        pass


class NetworkChangeTrigger(TriggerSource):
    """Triggers a check whenever the network topology changes."""

    follows_up = True

    def __init__(self, source: NetworkChangeSource):
        self.source = source
        self._callback: Optional[Callback] = None

    def start(self, callback: Callback) -> None:
        if self._callback is not None:
            return
        self._callback = callback
        self.source.subscribe(self._on_network_changed)

    def stop(self) -> None:
        if self._callback is None:
            return
        self.source.unsubscribe(self._on_network_changed)
        self._callback = None

    def _on_network_changed(self) -> None:
        logger.info("Network change event")
        if self._callback is not None:
            self._callback()


class PollingTrigger(TriggerSource):
    """Triggers a check every polling interval."""

    follows_up = False

    def __init__(self, interval_ms: int):
        self._callback: Optional[Callback] = None
        self._timer = RepeatingTimer(interval_ms / 1000.0, self._on_tick, name="polling")

    @property
    def running(self) -> bool:
        return self._timer.running

    def start(self, callback: Callback) -> None:
        self._callback = callback
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
        self._callback = None

    def _on_tick(self) -> None:
        logger.info("Polling timer event")
        if self._callback is not None:
            self._callback()


def create_trigger(
    config: MonitorConfig,
    source: Optional[NetworkChangeSource] = None,
) -> TriggerSource:
    """Select the trigger source for the configured mode."""
    if config.mode is MonitorMode.AUTO:
        return NetworkChangeTrigger(source or InterfaceWatcher(config.watch_interval_ms))
    return PollingTrigger(config.polling_interval_ms)
