"""Restartable timers running on the asyncio event loop."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class OneShotTimer:
    """Calls ``callback`` once, ``delay`` seconds after being armed.

    Arming a pending timer restarts the countdown, so the callback fires
    ``delay`` seconds after the most recent ``arm()``.
    """

    def __init__(self, delay: float, callback: Callable[[], None], name: str = ""):
        self.delay = delay
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """Whether the timer is armed and has not fired yet."""
        return self._task is not None and not self._task.done()

    def arm(self, delay: Optional[float] = None) -> None:
        """Start (or restart) the countdown. Must be called on the loop."""
        self.cancel()
        if delay is not None:
            self.delay = delay
        self._task = asyncio.get_running_loop().create_task(self._run(self.delay))

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._task = None
        try:
            self._callback()
        except Exception:
            logger.exception(f"Timer {self.name or 'callback'} failed")


class RepeatingTimer:
    """Calls ``callback`` every ``interval`` seconds until stopped."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = ""):
        self.interval = interval
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self._callback()
            except Exception:
                logger.exception(f"Timer {self.name or 'callback'} failed")
