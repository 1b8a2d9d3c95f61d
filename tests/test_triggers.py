"""Tests for trigger sources and the interface watcher."""

import asyncio
import socket
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from ipalert.monitor.config import MonitorMode
from ipalert.monitor.triggers import (
    InterfaceWatcher,
    NetworkChangeTrigger,
    PollingTrigger,
    create_trigger,
)

from fakes import make_config


def iface_addrs(**ifaces):
    """psutil.net_if_addrs()-shaped dict from name=address pairs."""
    return {
        name: [SimpleNamespace(family=socket.AF_INET, address=address)]
        for name, address in ifaces.items()
    }


class FakeSource:
    """Network change source driven by the test."""

    def __init__(self):
        self.callbacks = []

    def subscribe(self, callback):
        self.callbacks.append(callback)

    def unsubscribe(self, callback):
        self.callbacks.remove(callback)

    def signal(self):
        for callback in list(self.callbacks):
            callback()


class TestCreateTrigger:
    """Tests for trigger selection."""

    def test_auto_mode_uses_network_changes(self):
        trigger = create_trigger(make_config(mode=MonitorMode.AUTO, watch_interval_ms=500))

        assert isinstance(trigger, NetworkChangeTrigger)
        assert isinstance(trigger.source, InterfaceWatcher)
        assert trigger.source.interval == 0.5
        assert trigger.follows_up is True

    def test_auto_mode_uses_given_source(self):
        source = FakeSource()
        trigger = create_trigger(make_config(mode=MonitorMode.AUTO), source)

        assert trigger.source is source

    def test_timed_mode_uses_polling(self):
        trigger = create_trigger(make_config(mode=MonitorMode.TIMED, polling_interval_ms=250))

        assert isinstance(trigger, PollingTrigger)
        assert trigger._timer.interval == 0.25
        assert trigger.follows_up is False


class TestNetworkChangeTrigger:
    """Tests for NetworkChangeTrigger."""

    def test_forwards_signals(self):
        source = FakeSource()
        callback = MagicMock()
        trigger = NetworkChangeTrigger(source)

        trigger.start(callback)
        source.signal()
        source.signal()

        assert callback.call_count == 2

    def test_subscribes_once(self):
        source = FakeSource()
        trigger = NetworkChangeTrigger(source)

        trigger.start(MagicMock())
        trigger.start(MagicMock())

        assert len(source.callbacks) == 1

    def test_stop_unsubscribes(self):
        source = FakeSource()
        callback = MagicMock()
        trigger = NetworkChangeTrigger(source)
        trigger.start(callback)

        trigger.stop()
        source.signal()

        assert source.callbacks == []
        callback.assert_not_called()

    def test_stop_is_idempotent(self):
        source = FakeSource()
        trigger = NetworkChangeTrigger(source)
        trigger.start(MagicMock())

        trigger.stop()
        trigger.stop()

    def test_stop_before_start_is_safe(self):
        trigger = NetworkChangeTrigger(FakeSource())

        trigger.stop()


class TestPollingTrigger:
    """Tests for PollingTrigger."""

    @pytest.mark.asyncio
    async def test_ticks_until_stopped(self):
        callback = MagicMock()
        trigger = PollingTrigger(interval_ms=10)

        trigger.start(callback)
        assert trigger.running is True
        await asyncio.sleep(0.06)
        trigger.stop()
        count = callback.call_count
        await asyncio.sleep(0.03)

        assert count >= 2
        assert callback.call_count == count
        assert trigger.running is False

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        trigger = PollingTrigger(interval_ms=10)
        trigger.start(MagicMock())

        trigger.stop()
        trigger.stop()


class TestInterfaceWatcher:
    """Tests for the psutil-backed network change source."""

    def test_snapshot_lists_addresses(self):
        with patch("ipalert.monitor.triggers.psutil.net_if_addrs") as net_if_addrs:
            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.10", lo="127.0.0.1")

            snapshot = InterfaceWatcher.take_snapshot()

        assert ("eth0", int(socket.AF_INET), "192.168.1.10") in snapshot
        assert len(snapshot) == 2

    @pytest.mark.asyncio
    async def test_signals_only_on_change(self):
        callback = MagicMock()
        watcher = InterfaceWatcher(interval_ms=60000)

        with patch("ipalert.monitor.triggers.psutil.net_if_addrs") as net_if_addrs:
            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.10")
            watcher.subscribe(callback)

            assert watcher.poll() is False
            callback.assert_not_called()

            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.22")
            assert watcher.poll() is True
            assert watcher.poll() is False

        callback.assert_called_once_with()
        watcher.unsubscribe(callback)

    @pytest.mark.asyncio
    async def test_signals_every_subscriber(self):
        first, second = MagicMock(), MagicMock()
        watcher = InterfaceWatcher(interval_ms=60000)

        with patch("ipalert.monitor.triggers.psutil.net_if_addrs") as net_if_addrs:
            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.10")
            watcher.subscribe(first)
            watcher.subscribe(second)

            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.10", wg0="10.8.0.2")
            watcher.poll()

        first.assert_called_once()
        second.assert_called_once()
        watcher.unsubscribe(first)
        watcher.unsubscribe(second)

    @pytest.mark.asyncio
    async def test_watch_loop_polls(self):
        callback = MagicMock()
        watcher = InterfaceWatcher(interval_ms=10)

        with patch("ipalert.monitor.triggers.psutil.net_if_addrs") as net_if_addrs:
            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.10")
            watcher.subscribe(callback)
            assert watcher.running is True

            net_if_addrs.return_value = {}
            await asyncio.sleep(0.05)

            watcher.unsubscribe(callback)

        callback.assert_called_once()
        await asyncio.sleep(0)
        assert watcher.running is False

    @pytest.mark.asyncio
    async def test_subscribe_failure_propagates(self):
        """Failing to read interfaces at registration is an error."""
        watcher = InterfaceWatcher()

        with patch(
            "ipalert.monitor.triggers.psutil.net_if_addrs",
            side_effect=PermissionError("denied"),
        ):
            with pytest.raises(PermissionError):
                watcher.subscribe(MagicMock())

        assert watcher.running is False

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_others(self):
        failing = MagicMock(side_effect=RuntimeError("broken"))
        healthy = MagicMock()
        watcher = InterfaceWatcher(interval_ms=60000)

        with patch("ipalert.monitor.triggers.psutil.net_if_addrs") as net_if_addrs:
            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.10")
            watcher.subscribe(failing)
            watcher.subscribe(healthy)

            net_if_addrs.return_value = iface_addrs(eth0="192.168.1.11")
            watcher.poll()

        healthy.assert_called_once()
        watcher.unsubscribe(failing)
        watcher.unsubscribe(healthy)
