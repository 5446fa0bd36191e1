"""Configuration helpers for the ShiftWake alarm service."""

from __future__ import annotations

import os
import socket
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Literal, get_args

from shiftwake.datetime_utils import format_time_of_day, parse_time_string, to_local_date
from shiftwake.utils import (
    parse_bool,
    parse_flag,
    parse_float,
    parse_int,
    sanitize_hostname_for_topic,
)

Recurrence = Literal["daily", "every-other-day"]
RECURRENCES: tuple[str, ...] = get_args(Recurrence)

DEFAULT_ALARM_TIME = "07:00"
DEFAULT_MAX_TIMER_SECONDS = 24 * 60 * 60
DEFAULT_MISSED_GRACE_SECONDS = 5 * 60
DEFAULT_PREVIEW_DAYS = 14

_RECURRENCE_ALIASES = {
    "every-day": "daily",
    "everyday": "daily",
    "alternate": "every-other-day",
    "alternating": "every-other-day",
    "every-2-days": "every-other-day",
    "shift": "every-other-day",
}

# UI payloads use camelCase; the dataclass uses snake_case.
_FIELD_ALIASES = {
    "alarmHour": "alarm_hour",
    "alarmMinute": "alarm_minute",
    "startDate": "start_date",
    "hour": "alarm_hour",
    "minute": "alarm_minute",
}


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def coerce_recurrence(value: str) -> Recurrence:
    """Map a recurrence name (or alias) onto a supported rule. Raises ValueError otherwise."""
    normalized = str(value).strip().lower().replace("_", "-").replace(" ", "-")
    normalized = _RECURRENCE_ALIASES.get(normalized, normalized)
    if normalized not in RECURRENCES:
        raise ValueError(f"Unsupported recurrence: {value!r}")
    return normalized  # type: ignore[return-value]


def normalize_recurrence(value: str | None, default: Recurrence = "daily") -> Recurrence:
    if not value:
        return default
    try:
        return coerce_recurrence(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class SchedulerConfig:
    alarm_hour: int
    alarm_minute: int
    recurrence: Recurrence = "daily"
    start_date: date = field(default_factory=date.today)
    enabled: bool = True

    def __post_init__(self) -> None:
        # datetime is a date subclass; keep only the calendar day.
        if isinstance(self.start_date, datetime) or not isinstance(self.start_date, date):
            object.__setattr__(self, "start_date", to_local_date(self.start_date))

    @property
    def time_of_day(self) -> str:
        return format_time_of_day(self.alarm_hour, self.alarm_minute)

    def to_dict(self) -> dict[str, Any]:
        return {
            "alarm_hour": self.alarm_hour,
            "alarm_minute": self.alarm_minute,
            "time": self.time_of_day,
            "recurrence": self.recurrence,
            "start_date": self.start_date.isoformat(),
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> SchedulerConfig:
        changes = parse_config_changes(payload)
        hour, minute = parse_time_string(DEFAULT_ALARM_TIME)
        changes.setdefault("alarm_hour", hour)
        changes.setdefault("alarm_minute", minute)
        return cls(**changes)


CONFIG_FIELDS: frozenset[str] = frozenset(f.name for f in fields(SchedulerConfig))


def split_config_changes(changes: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Split a change set into known SchedulerConfig fields and ignored keys."""
    accepted: dict[str, Any] = {}
    ignored: list[str] = []
    for key, value in changes.items():
        if key in CONFIG_FIELDS:
            accepted[key] = value
        else:
            ignored.append(key)
    return accepted, ignored


def parse_config_changes(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a UI/MQTT change set into typed SchedulerConfig fields.

    Accepts snake_case or camelCase keys and a ``time`` shortcut (``"06:45"``).
    Unknown keys are dropped. Raises ValueError for values that cannot be coerced.
    """
    changes: dict[str, Any] = {}
    for raw_key, value in payload.items():
        key = _FIELD_ALIASES.get(raw_key, raw_key)
        if key == "time":
            hour, minute = parse_time_string(str(value))
            changes["alarm_hour"] = hour
            changes["alarm_minute"] = minute
        elif key in {"alarm_hour", "alarm_minute"}:
            try:
                changes[key] = int(value)
            except (TypeError, ValueError, OverflowError) as exc:
                raise ValueError(f"{raw_key} must be an integer") from exc
        elif key == "recurrence":
            changes[key] = coerce_recurrence(value)
        elif key == "start_date":
            try:
                changes[key] = to_local_date(value)
            except (ValueError, OverflowError) as exc:
                raise ValueError(f"{raw_key} must be an ISO date") from exc
        elif key == "enabled":
            if isinstance(value, bool):
                changes[key] = value
            else:
                flag = parse_flag(str(value))
                if flag is None:
                    raise ValueError(f"enabled must be a boolean, got {value!r}")
                changes[key] = flag
    return changes


@dataclass(frozen=True)
class MqttConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    tls_enabled: bool
    cert: str | None
    key: str | None
    ca_cert: str | None
    topic_base: str


@dataclass(frozen=True)
class AlarmServiceConfig:
    hostname: str
    scheduler: SchedulerConfig
    mqtt: MqttConfig
    max_timer_seconds: float
    missed_alarm_grace_seconds: float
    preview_days: int

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> AlarmServiceConfig:
        source = os.environ if env is None else env
        hostname = source.get("SHIFTWAKE_HOSTNAME") or socket.gethostname()

        try:
            hour, minute = parse_time_string(source.get("SHIFTWAKE_ALARM_TIME") or DEFAULT_ALARM_TIME)
        except ValueError:
            hour, minute = parse_time_string(DEFAULT_ALARM_TIME)

        start_date = date.today()
        if raw_start := _strip_or_none(source.get("SHIFTWAKE_START_DATE")):
            try:
                start_date = to_local_date(raw_start)
            except ValueError:
                pass

        scheduler = SchedulerConfig(
            alarm_hour=hour,
            alarm_minute=minute,
            recurrence=normalize_recurrence(source.get("SHIFTWAKE_RECURRENCE")),
            start_date=start_date,
            enabled=parse_bool(source.get("SHIFTWAKE_ALARM_ENABLED"), True),
        )

        topic_base = source.get("SHIFTWAKE_TOPIC_BASE") or f"shiftwake/{sanitize_hostname_for_topic(hostname)}"
        mqtt = MqttConfig(
            host=_strip_or_none(source.get("MQTT_HOST")),
            port=parse_int(source.get("MQTT_PORT"), 1883),
            username=_strip_or_none(source.get("MQTT_USER") or source.get("MQTT_USERNAME")),
            password=_strip_or_none(source.get("MQTT_PASS") or source.get("MQTT_PASSWORD")),
            tls_enabled=parse_bool(source.get("MQTT_TLS_ENABLED"), False),
            cert=_strip_or_none(source.get("MQTT_CERT")),
            key=_strip_or_none(source.get("MQTT_KEY")),
            ca_cert=_strip_or_none(source.get("MQTT_CA_CERT")),
            topic_base=topic_base.rstrip("/"),
        )

        return AlarmServiceConfig(
            hostname=hostname,
            scheduler=scheduler,
            mqtt=mqtt,
            max_timer_seconds=max(
                60.0, parse_float(source.get("SHIFTWAKE_MAX_TIMER_SECONDS"), DEFAULT_MAX_TIMER_SECONDS)
            ),
            missed_alarm_grace_seconds=max(
                0.0, parse_float(source.get("SHIFTWAKE_MISSED_GRACE_SECONDS"), DEFAULT_MISSED_GRACE_SECONDS)
            ),
            preview_days=max(1, parse_int(source.get("SHIFTWAKE_PREVIEW_DAYS"), DEFAULT_PREVIEW_DAYS)),
        )
