"""Monitor coordinator - decides when to check the address and what to report."""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Set

from .config import MonitorConfig, MonitorMode
from .fetcher import NO_CONNECTION, AddressFetcher, FetchResult
from .sinks import PresentationSink
from .timers import OneShotTimer
from .triggers import TriggerSource, create_trigger

# Display and notification texts
NO_CONNECTION_TEXT = "No Connection"
ADDRESS_TEXT = "IP: {address}"
CONNECTION_LOST_TITLE = "Connection Lost"
ADDRESS_CHANGED_TITLE = "IP Address Changed"

TimerFactory = Callable[[float, Callable[[], None], str], OneShotTimer]


class CheckOutcome(Enum):
    """What a call to check_now did."""
    SKIPPED = "skipped"  # Another check was in flight, or the monitor is closed
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FAILED = "failed"  # Unexpected error, state left as it was


def format_display_text(result: FetchResult) -> str:
    """Status text for an address lookup result."""
    if not result.connected:
        return NO_CONNECTION_TEXT
    return ADDRESS_TEXT.format(address=result.address)


class MonitorCoordinator:
    """Owns the last known address and runs address checks.

    Checks are single-flight: a check requested while another is running
    is dropped, not queued. After a change caused by a network event, two
    one-shot follow-up timers re-check once the network has had time to
    settle; each new change restarts them.
    """

    def __init__(
        self,
        config: MonitorConfig,
        fetcher: AddressFetcher,
        sink: PresentationSink,
        logger: Optional[logging.Logger] = None,
        trigger: Optional[TriggerSource] = None,
        timer_factory: TimerFactory = OneShotTimer,
    ):
        """Initialize coordinator.

        Args:
            config: Monitor configuration.
            fetcher: Public address lookup.
            sink: Where display text and notifications go.
            logger: Logger to use (defaults to the module logger).
            trigger: Trigger source (defaults to the one for config.mode).
            timer_factory: Builds the follow-up timers.
        """
        self.config = config
        self.fetcher = fetcher
        self.sink = sink
        self.logger = logger or logging.getLogger(__name__)
        self.trigger = trigger or create_trigger(config)

        self._lock = asyncio.Lock()
        self._update_in_flight = False
        self._last_known: FetchResult = NO_CONNECTION
        self._display_text: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()
        self._started = False
        self._closed = False

        self.follow_up_short = timer_factory(
            config.follow_up_short_ms / 1000.0, self._on_follow_up, "follow-up-short"
        )
        self.follow_up_long = timer_factory(
            config.follow_up_long_ms / 1000.0, self._on_follow_up, "follow-up-long"
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *args):
        self.close()

    @property
    def last_known(self) -> FetchResult:
        return self._last_known

    @property
    def current_address(self) -> Optional[str]:
        """Last known public address, or None when disconnected."""
        return self._last_known.address

    @property
    def display_text(self) -> Optional[str]:
        return self._display_text

    @property
    def is_checking(self) -> bool:
        return self._update_in_flight

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Register the trigger source and run the initial check.

        The display starts at the no-connection label. The initial check
        never notifies; it only establishes the displayed state.
        """
        if self._started:
            return
        self._started = True

        self._display_text = format_display_text(self._last_known)
        self.sink.set_display_text(self._display_text)

        self.trigger.start(self._on_trigger)
        self.logger.info(f"Monitoring public address ({self.config.mode.value} mode)")

        await self.check_now(should_notify=False, should_follow_up=False)

    def _on_trigger(self) -> None:
        self._spawn_check(self.config.notifications_enabled, self.trigger.follows_up)

    def _on_follow_up(self) -> None:
        self.logger.info("Follow-up timer event")
        self._spawn_check(self.config.notifications_enabled, False)

    def _spawn_check(self, should_notify: bool, should_follow_up: bool) -> None:
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(
            self.check_now(should_notify, should_follow_up)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def check_now(
        self,
        should_notify: bool = True,
        should_follow_up: bool = False,
    ) -> CheckOutcome:
        """Check the public address and report a change.

        Args:
            should_notify: Show a notification if the address changed.
            should_follow_up: Restart the follow-up timers if it changed.

        Returns:
            What the check did.
        """
        # Only one check at a time; the lock is never held across I/O
        async with self._lock:
            if self._update_in_flight or self._closed:
                return CheckOutcome.SKIPPED
            self._update_in_flight = True

        try:
            if self.config.mode is MonitorMode.AUTO:
                # Let a just-changed interface settle before probing it
                await asyncio.sleep(self.config.polling_interval)

            result = await self.fetcher.fetch()

            if result == self._last_known:
                self.logger.debug(f"Public address unchanged ({result})")
                return CheckOutcome.UNCHANGED

            self._apply_change(result, should_notify, should_follow_up)
            return CheckOutcome.CHANGED
        except Exception as e:
            self.logger.error(f"Exception while checking public address: {e}", exc_info=True)
            return CheckOutcome.FAILED
        finally:
            async with self._lock:
                self._update_in_flight = False

    def _apply_change(
        self,
        result: FetchResult,
        should_notify: bool,
        should_follow_up: bool,
    ) -> None:
        previous = self._last_known
        self._last_known = result
        self.logger.info(f"Public address changed: {previous} -> {result}")

        text = format_display_text(result)
        self._display_text = text
        self.sink.set_display_text(text)

        if should_notify:
            if result.connected:
                title, body = ADDRESS_CHANGED_TITLE, text
            else:
                title, body = CONNECTION_LOST_TITLE, ""
            self.sink.show_notification(title, body, self.config.notification_duration_ms)

        if should_follow_up:
            for timer in (self.follow_up_short, self.follow_up_long):
                timer.cancel()
                timer.arm()

    def close(self) -> None:
        """Stop triggers and timers and release the sink.

        Safe to call more than once, including from cleanup paths.
        """
        if self._closed:
            return
        self._closed = True

        self.trigger.stop()
        self.follow_up_short.cancel()
        self.follow_up_long.cancel()

        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        self.sink.close()
        self.logger.info("Monitor stopped")
