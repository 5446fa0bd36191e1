"""Alarm scheduling engine.

Computes when the next alarm should ring under a "daily" or "every-other-day"
recurrence rule, keeps exactly one countdown armed for that instant, and
re-arms itself after every firing, reconfiguration or display wake-up.

The date arithmetic lives in plain functions (``next_alarm_after``,
``is_work_day``) so it can be exercised without a host; ``AlarmScheduler``
adds the stateful part on top of a ``SchedulerHost``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from functools import partial
from typing import Any

from shiftwake.datetime_utils import alarm_instant, calendar_days_between, ensure_local, to_local_date

from .config import (
    DEFAULT_MAX_TIMER_SECONDS,
    DEFAULT_MISSED_GRACE_SECONDS,
    SchedulerConfig,
    split_config_changes,
)
from .host import LoopHost, SchedulerHost, Subscription, TimerHandle

NextAlarmCallback = Callable[[datetime | None], None]
VisibilityChangeCallback = Callable[[bool], None]

LOGGER = logging.getLogger("shiftwake.scheduler")

# Upper bound for the day-by-day search; every supported rule qualifies within two days.
MAX_SCAN_DAYS = 7

_ARITHMETIC_ERRORS = (ValueError, OverflowError, TypeError)


@dataclass
class SchedulerCallbacks:
    on_alarm: Callable[[], None]
    on_next_alarm_update: NextAlarmCallback | None = None
    on_visibility_change: VisibilityChangeCallback | None = None


def is_work_day(config: SchedulerConfig | None, day: date | datetime) -> bool:
    """Whether the recurrence rule lets the alarm ring on ``day``.

    Every-other-day shifts alternate from ``start_date`` (day zero is a work
    day). Parity is taken on whole calendar days, so dates before the start
    date alternate the same way.
    """
    if config is None or config.recurrence == "daily":
        return True
    return calendar_days_between(config.start_date, day) % 2 == 0


def next_alarm_after(config: SchedulerConfig | None, reference: datetime) -> datetime | None:
    """Next alarm instant strictly after ``reference``, or None when disabled.

    A naive ``reference`` is read as local wall-clock time; the result is a
    timezone-aware local datetime.
    """
    if config is None or not config.enabled:
        return None
    reference = ensure_local(reference)
    today = reference.date()
    candidate = alarm_instant(today, config.alarm_hour, config.alarm_minute)
    # An alarm at exactly the reference instant counts as already passed.
    if candidate > reference and is_work_day(config, today):
        return candidate
    day = today
    for _ in range(MAX_SCAN_DAYS):
        day += timedelta(days=1)
        if is_work_day(config, day):
            return alarm_instant(day, config.alarm_hour, config.alarm_minute)
    return None


class AlarmScheduler:
    """Keeps one countdown armed for the next alarm and re-arms after each event.

    All public methods are safe in any state: before ``init``, after ``stop``
    and after ``destroy`` they are no-ops or return permissive defaults.
    Everything runs on the host's event loop; there is no locking.
    """

    def __init__(
        self,
        host: SchedulerHost | None = None,
        *,
        max_timer_seconds: float = DEFAULT_MAX_TIMER_SECONDS,
        missed_alarm_grace: float = DEFAULT_MISSED_GRACE_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._max_timer_seconds = max(1.0, float(max_timer_seconds))
        self._missed_alarm_grace = max(0.0, float(missed_alarm_grace))
        self._logger = logger or LOGGER
        self._config: SchedulerConfig | None = None
        self._callbacks: SchedulerCallbacks | None = None
        self._next_alarm: datetime | None = None
        self._timer: TimerHandle | None = None
        self._visibility_subscription: Subscription | None = None
        self._last_zone: tuple[str | None, timedelta | None] | None = None
        self._epoch = 0
        self._stopped = False
        self._destroyed = False

    @property
    def host(self) -> SchedulerHost:
        if self._host is None:
            self._host = LoopHost()
        return self._host

    @property
    def config(self) -> SchedulerConfig | None:
        return self._config

    @property
    def armed(self) -> bool:
        return self._timer is not None

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def init(self, config: SchedulerConfig, callbacks: SchedulerCallbacks) -> None:
        if self._destroyed:
            self._logger.warning("[scheduler] init ignored; scheduler was destroyed")
            return
        self._cancel_timer()
        self._remove_visibility_watcher()
        self._config = config
        self._callbacks = callbacks
        self._next_alarm = None
        self._last_zone = None
        self._stopped = False
        self._visibility_subscription = self.host.watch_visibility(self._handle_visibility)
        self._logger.info("[scheduler] Initialized with %r", config)
        self._reschedule()

    def update_config(self, partial_config: Mapping[str, Any] | None = None, **changes: Any) -> None:
        """Shallow-merge the given fields into the current config, then recompute and re-arm."""
        if self._config is None:
            self._logger.debug("[scheduler] update_config ignored; scheduler not initialized")
            return
        accepted, ignored = split_config_changes({**(partial_config or {}), **changes})
        if ignored:
            self._logger.warning("[scheduler] Ignoring unknown config fields: %s", ", ".join(sorted(ignored)))
        try:
            self._config = replace(self._config, **accepted)
        except _ARITHMETIC_ERRORS as exc:
            self._logger.warning("[scheduler] Rejected config change %s: %s", accepted, exc)
            return
        self._stopped = False
        self._logger.info("[scheduler] Config updated: %s", ", ".join(sorted(accepted)) or "no changes")
        self._reschedule()

    def calculate_next_alarm_time(self, reference: datetime | None = None) -> datetime | None:
        if self._config is None or not self._config.enabled:
            return None
        if reference is None:
            reference = self.host.now()
        try:
            return next_alarm_after(self._config, reference)
        except _ARITHMETIC_ERRORS as exc:
            self._logger.warning("[scheduler] Unable to compute next alarm from %r: %s", self._config, exc)
            return None

    def is_work_day(self, day: date | datetime) -> bool:
        try:
            return is_work_day(self._config, day)
        except _ARITHMETIC_ERRORS as exc:
            self._logger.warning("[scheduler] Unable to evaluate work day %r: %s", day, exc)
            return True

    def work_day_preview(self, start: date | datetime | None = None, days: int = 14) -> list[tuple[date, bool]]:
        """(date, is_work_day) pairs for a calendar preview starting at ``start`` (default today)."""
        first = to_local_date(start if start is not None else self.host.now())
        preview: list[tuple[date, bool]] = []
        for offset in range(max(0, days)):
            day = first + timedelta(days=offset)
            preview.append((day, self.is_work_day(day)))
        return preview

    def get_next_alarm_time(self) -> datetime | None:
        return self._next_alarm

    def stop(self) -> None:
        """Cancel the countdown and clear the pending alarm; the config is kept.

        Stays stopped until the next ``init`` or ``update_config``.
        """
        had_pending = self._timer is not None or self._next_alarm is not None
        self._stopped = True
        self._cancel_timer()
        self._next_alarm = None
        if had_pending:
            self._logger.info("[scheduler] Stopped")
            self._report(None)

    def destroy(self) -> None:
        self.stop()
        self._remove_visibility_watcher()
        self._config = None
        self._callbacks = None
        self._destroyed = True

    # ------------------------------------------------------------------
    # Countdown management
    # ------------------------------------------------------------------

    def _reschedule(self, reference: datetime | None = None) -> None:
        self._cancel_timer()
        if self._config is None or self._callbacks is None:
            return
        now = self.host.now()
        self._check_timezone_change(now)
        next_alarm = self.calculate_next_alarm_time(reference or now)
        self._next_alarm = next_alarm
        epoch = self._epoch
        self._report(next_alarm)
        if self._epoch != epoch:
            # The observer stopped, reconfigured or destroyed the scheduler itself.
            return
        if next_alarm is None:
            self._logger.info("[scheduler] No alarm scheduled")
            return
        self._arm(next_alarm, now)

    def _arm(self, next_alarm: datetime, now: datetime) -> None:
        delay = (next_alarm - now).total_seconds()
        if delay > self._max_timer_seconds:
            # Wake up part-way to recompute; picks up DST shifts and clock jumps.
            self._logger.debug(
                "[scheduler] Next alarm %s is %.0fs away; checkpoint in %.0fs",
                next_alarm.isoformat(),
                delay,
                self._max_timer_seconds,
            )
            self._start_countdown(self._max_timer_seconds, self._on_checkpoint)
            return
        if delay <= 0:
            self._logger.debug("[scheduler] Next alarm %s is already due; firing immediately", next_alarm.isoformat())
        else:
            self._logger.info("[scheduler] Next alarm at %s (in %.0fs)", next_alarm.isoformat(), delay)
        self._start_countdown(max(0.0, delay), partial(self._on_timer, next_alarm))

    def _start_countdown(self, delay: float, callback: Callable[[], None]) -> None:
        try:
            self._timer = self.host.call_later(delay, callback)
        except RuntimeError as exc:
            # LoopHost needs a running event loop to arm anything.
            self._logger.error("[scheduler] Unable to arm alarm countdown: %s", exc)
            self._timer = None

    def _on_checkpoint(self) -> None:
        self._timer = None
        self._reschedule()

    def _on_timer(self, alarm_at: datetime) -> None:
        self._timer = None
        self._fire(alarm_at)

    def _fire(self, alarm_at: datetime) -> None:
        self._cancel_timer()
        callbacks = self._callbacks
        if callbacks is None:
            return
        epoch = self._epoch
        self._logger.info("[scheduler] Alarm firing (scheduled for %s)", alarm_at.isoformat())
        try:
            callbacks.on_alarm()
        except Exception:
            self._logger.exception("[scheduler] Alarm handler failed")
        if self._epoch != epoch:
            # The handler stopped, reconfigured or destroyed the scheduler itself.
            return
        # A countdown can complete slightly early; never recompute from before the fired instant.
        self._reschedule(max(self.host.now(), alarm_at))

    def _cancel_timer(self) -> None:
        self._epoch += 1
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()

    # ------------------------------------------------------------------
    # Visibility recovery
    # ------------------------------------------------------------------

    def _handle_visibility(self, visible: bool) -> None:
        callbacks = self._callbacks
        if callbacks is None:
            return
        if callbacks.on_visibility_change is not None:
            try:
                callbacks.on_visibility_change(visible)
            except Exception:
                self._logger.exception("[scheduler] Visibility observer failed")
        if self._stopped or not visible:
            return
        if self._config is not None and self._config.enabled:
            self._verify_after_resume()

    def _verify_after_resume(self) -> None:
        """Countdowns may have been suspended while hidden; re-validate against the wall clock."""
        now = self.host.now()
        pending = self._next_alarm
        if pending is not None and pending <= now:
            missed_by = (now - pending).total_seconds()
            if missed_by < self._missed_alarm_grace:
                self._logger.info("[scheduler] Alarm was missed while hidden (%.0fs late); firing now", missed_by)
                self._fire(pending)
                return
            self._logger.warning(
                "[scheduler] Alarm at %s was missed by %.0fs; scheduling the next one",
                pending.isoformat(),
                missed_by,
            )
        self._reschedule()

    def _remove_visibility_watcher(self) -> None:
        subscription = self._visibility_subscription
        self._visibility_subscription = None
        if subscription is not None:
            subscription.remove()

    def _check_timezone_change(self, now: datetime) -> None:
        zone = (now.tzname(), now.utcoffset())
        if self._last_zone is not None and zone != self._last_zone:
            self._logger.info(
                "[scheduler] Local timezone changed (%s -> %s); recalculating alarm time",
                self._last_zone[0],
                zone[0],
            )
        self._last_zone = zone

    def _report(self, next_alarm: datetime | None) -> None:
        callbacks = self._callbacks
        if callbacks is None or callbacks.on_next_alarm_update is None:
            return
        try:
            callbacks.on_next_alarm_update(next_alarm)
        except Exception:
            self._logger.exception("[scheduler] Next-alarm observer failed")
