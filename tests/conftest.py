"""Shared test fixtures and configuration for the ShiftWake test suite.

This module provides reusable fixtures for common test scenarios including:
- A manual-clock scheduler host (no real sleeping)
- Scheduler callbacks as mocks
- MQTT configuration objects
- Logger mocks
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from unittest.mock import Mock

import pytest
from shiftwake.alarm.config import MqttConfig, SchedulerConfig
from shiftwake.alarm.host import VisibilityHub, VisibilitySubscription
from shiftwake.alarm.scheduler import AlarmScheduler, SchedulerCallbacks

# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


def local(*args: int) -> datetime:
    """Aware local datetime from naive components."""
    return datetime(*args).astimezone()


# ============================================================================
# Manual-clock host
# ============================================================================


class FakeTimer:
    def __init__(self, due: datetime, delay: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def live(self) -> bool:
        return not self.cancelled and not self.fired

    def cancel(self) -> None:
        self.cancelled = True


class FakeHost:
    """Scheduler host with a clock that only moves when the test says so."""

    def __init__(self, now: datetime) -> None:
        self.current = now.astimezone()
        self.timers: list[FakeTimer] = []
        self.visibility = VisibilityHub()

    def now(self) -> datetime:
        return self.current

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.current + timedelta(seconds=max(0.0, delay)), delay, callback)
        self.timers.append(timer)
        return timer

    def watch_visibility(self, callback: Callable[[bool], None]) -> VisibilitySubscription:
        return self.visibility.subscribe(callback)

    @property
    def live_timers(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.live]

    def advance(self, **delta: float) -> None:
        """Move the clock forward, firing due countdowns in order."""
        target = self.current + timedelta(**delta)
        while True:
            due = [timer for timer in self.live_timers if timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda item: item.due)
            self.current = max(self.current, timer.due)
            timer.fired = True
            timer.callback()
        self.current = target

    def jump_to(self, when: datetime) -> None:
        """Move the clock without firing anything (suspended countdowns)."""
        self.current = when.astimezone()


@pytest.fixture
def make_host():
    """Factory fixture for manual-clock hosts starting at a local wall-clock time.

    Usage:
        host = make_host(2024, 1, 14, 8, 0)
    """

    def _create_host(*args: int) -> FakeHost:
        return FakeHost(local(*args))

    return _create_host


@pytest.fixture
def host(make_host) -> FakeHost:
    return make_host(2024, 1, 15, 8, 0)


@pytest.fixture
def callbacks() -> SchedulerCallbacks:
    return SchedulerCallbacks(
        on_alarm=Mock(),
        on_next_alarm_update=Mock(),
        on_visibility_change=Mock(),
    )


@pytest.fixture
def make_config():
    """Factory fixture for scheduler configs with custom overrides.

    Usage:
        config = make_config(recurrence="every-other-day", alarm_hour=6)
    """

    def _create_config(**overrides) -> SchedulerConfig:
        defaults = {
            "alarm_hour": 9,
            "alarm_minute": 0,
            "recurrence": "daily",
            "start_date": date(2024, 1, 1),
            "enabled": True,
        }
        defaults.update(overrides)
        return SchedulerConfig(**defaults)

    return _create_config


@pytest.fixture
def scheduler(host, mock_logger):
    instance = AlarmScheduler(host, logger=mock_logger)
    yield instance
    instance.destroy()


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    Returns a Mock with spec=logging.Logger to ensure only valid
    logger methods can be called.
    """
    return Mock(spec=logging.Logger)


# ============================================================================
# MQTT Fixtures
# ============================================================================


@pytest.fixture
def mqtt_config():
    """Create a basic MQTT configuration for testing."""
    return MqttConfig(
        host="localhost",
        port=1883,
        topic_base="shiftwake/test-device",
        username=None,
        password=None,
        tls_enabled=False,
        ca_cert=None,
        cert=None,
        key=None,
    )


@pytest.fixture
def mqtt_config_with_auth():
    """Create MQTT configuration with username/password authentication."""
    return MqttConfig(
        host="localhost",
        port=1883,
        topic_base="shiftwake/test-device",
        username="test_user",
        password="test_pass",
        tls_enabled=False,
        ca_cert=None,
        cert=None,
        key=None,
    )


@pytest.fixture
def mqtt_config_with_tls():
    """Create MQTT configuration with TLS encryption enabled."""
    return MqttConfig(
        host="localhost",
        port=8883,
        topic_base="shiftwake/test-device",
        username="mqtt_user",
        password="mqtt_pass",
        tls_enabled=True,
        ca_cert="/path/to/ca.crt",
        cert="/path/to/client.crt",
        key="/path/to/client.key",
    )
