"""Host capabilities consumed by the alarm scheduler.

The scheduler never touches the event loop or the display directly. It reads
the clock, arms single-fire countdowns and subscribes to visibility changes
through a host object; ``LoopHost`` provides those on top of asyncio and an
in-process ``VisibilityHub``. Tests swap in a manual-clock host.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from shiftwake.datetime_utils import local_now

VisibilityCallback = Callable[[bool], None]

LOGGER = logging.getLogger("shiftwake.host")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Subscription(Protocol):
    def remove(self) -> None: ...


class SchedulerHost(Protocol):
    def now(self) -> datetime: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def watch_visibility(self, callback: VisibilityCallback) -> Subscription: ...


class VisibilitySubscription:
    def __init__(self, hub: VisibilityHub, callback: VisibilityCallback) -> None:
        self._hub = hub
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def remove(self) -> None:
        if not self._active:
            return
        self._active = False
        self._hub._discard(self._callback)


class VisibilityHub:
    """Tracks whether the alarm display is visible and fans out transitions.

    Listeners are only notified when the state actually flips. Not thread-safe:
    feed it from the event loop thread (see ``MqttVisibilityBridge``).
    """

    def __init__(self, *, visible: bool = True, logger: logging.Logger | None = None) -> None:
        self._visible = visible
        self._listeners: list[VisibilityCallback] = []
        self._logger = logger or LOGGER

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, callback: VisibilityCallback) -> VisibilitySubscription:
        self._listeners.append(callback)
        return VisibilitySubscription(self, callback)

    def set_visible(self, visible: bool) -> bool:
        """Record the new state; returns True when it was a transition."""
        visible = bool(visible)
        if visible == self._visible:
            return False
        self._visible = visible
        self._logger.debug("[visibility] Display is now %s", "visible" if visible else "hidden")
        for listener in list(self._listeners):
            try:
                listener(visible)
            except Exception as exc:
                self._logger.error("[visibility] Listener failed: %s", exc, exc_info=True)
        return True

    def _discard(self, callback: VisibilityCallback) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass


class LoopHost:
    """Scheduler host backed by the running asyncio loop and the local clock."""

    def __init__(
        self,
        visibility: VisibilityHub | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.visibility = visibility or VisibilityHub()
        self._loop = loop
        self._clock = clock

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> datetime:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)

    def watch_visibility(self, callback: VisibilityCallback) -> VisibilitySubscription:
        return self.visibility.subscribe(callback)
