"""Pytest configuration and shared fixtures."""

import pytest

from fakes import FakeTimer, FakeTrigger, RecordingSink


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def trigger():
    return FakeTrigger()


@pytest.fixture
def no_dotenv(monkeypatch):
    """Keep a developer's .env out of config loading."""
    monkeypatch.setattr("ipalert.shared.config.load_dotenv", lambda *a, **k: False)
    for name in ("IPALERT_CONFIG", "IPALERT_ENV", "LOG_LEVEL", "MQTT_BROKER"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def timer_factory():
    """Timer factory that keeps the timers it builds."""
    timers = []

    def factory(delay, callback, name=""):
        timer = FakeTimer(delay, callback, name)
        timers.append(timer)
        return timer

    factory.timers = timers
    return factory
