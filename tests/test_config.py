"""Tests for alarm configuration parsing."""

from __future__ import annotations

from datetime import date, datetime

import pytest
from shiftwake.alarm.config import (
    DEFAULT_MAX_TIMER_SECONDS,
    DEFAULT_MISSED_GRACE_SECONDS,
    DEFAULT_PREVIEW_DAYS,
    AlarmServiceConfig,
    SchedulerConfig,
    coerce_recurrence,
    normalize_recurrence,
    parse_config_changes,
    split_config_changes,
)


class TestRecurrence:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("daily", "daily"),
            ("DAILY", "daily"),
            ("every-other-day", "every-other-day"),
            ("every_other_day", "every-other-day"),
            ("Every Other Day", "every-other-day"),
            ("alternate", "every-other-day"),
            ("everyday", "daily"),
        ],
    )
    def test_coerce_accepts_aliases(self, raw, expected):
        assert coerce_recurrence(raw) == expected

    def test_coerce_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unsupported recurrence"):
            coerce_recurrence("weekly")

    def test_normalize_falls_back(self):
        assert normalize_recurrence(None) == "daily"
        assert normalize_recurrence("weekly") == "daily"
        assert normalize_recurrence("weekly", default="every-other-day") == "every-other-day"


class TestSchedulerConfig:
    def test_defaults(self):
        config = SchedulerConfig(alarm_hour=7, alarm_minute=0)
        assert config.recurrence == "daily"
        assert config.enabled is True
        assert config.start_date == date.today()

    def test_start_date_from_datetime_drops_time(self):
        config = SchedulerConfig(alarm_hour=7, alarm_minute=0, start_date=datetime(2024, 1, 1, 23, 30))
        assert config.start_date == date(2024, 1, 1)
        assert not isinstance(config.start_date, datetime)

    def test_start_date_from_string(self):
        config = SchedulerConfig(alarm_hour=7, alarm_minute=0, start_date="2024-03-05")
        assert config.start_date == date(2024, 3, 5)

    def test_invalid_start_date_raises(self):
        with pytest.raises(ValueError):
            SchedulerConfig(alarm_hour=7, alarm_minute=0, start_date="soon")

    def test_to_dict(self):
        config = SchedulerConfig(
            alarm_hour=6,
            alarm_minute=5,
            recurrence="every-other-day",
            start_date=date(2024, 1, 1),
            enabled=False,
        )
        assert config.to_dict() == {
            "alarm_hour": 6,
            "alarm_minute": 5,
            "time": "06:05",
            "recurrence": "every-other-day",
            "start_date": "2024-01-01",
            "enabled": False,
        }

    def test_from_dict_round_trips_to_dict(self):
        config = SchedulerConfig(alarm_hour=6, alarm_minute=5, start_date=date(2024, 1, 1))
        assert SchedulerConfig.from_dict(config.to_dict()) == config

    def test_from_dict_uses_default_time(self):
        config = SchedulerConfig.from_dict({"start_date": "2024-01-01"})
        assert (config.alarm_hour, config.alarm_minute) == (7, 0)


class TestParseConfigChanges:
    def test_camel_case_keys(self):
        changes = parse_config_changes({"alarmHour": "6", "alarmMinute": 15, "startDate": "2024-02-01"})
        assert changes == {"alarm_hour": 6, "alarm_minute": 15, "start_date": date(2024, 2, 1)}

    def test_time_shortcut(self):
        assert parse_config_changes({"time": "6:45 pm"}) == {"alarm_hour": 18, "alarm_minute": 45}

    def test_enabled_flags(self):
        assert parse_config_changes({"enabled": False}) == {"enabled": False}
        assert parse_config_changes({"enabled": "on"}) == {"enabled": True}

    def test_unknown_keys_dropped(self):
        assert parse_config_changes({"volume": 11, "recurrence": "shift"}) == {"recurrence": "every-other-day"}

    @pytest.mark.parametrize(
        "payload",
        [
            {"alarm_hour": "six"},
            {"alarm_minute": None},
            {"recurrence": "weekly"},
            {"start_date": "tomorrow"},
            {"enabled": "maybe"},
            {"time": "25:00"},
        ],
    )
    def test_invalid_values_raise(self, payload):
        with pytest.raises(ValueError):
            parse_config_changes(payload)

    def test_split_config_changes(self):
        accepted, ignored = split_config_changes({"alarm_hour": 6, "snooze": 5, "label": "x"})
        assert accepted == {"alarm_hour": 6}
        assert sorted(ignored) == ["label", "snooze"]


class TestAlarmServiceConfig:
    def test_defaults_from_empty_env(self):
        config = AlarmServiceConfig.from_env({"SHIFTWAKE_HOSTNAME": "Kitchen.Local"})

        assert config.hostname == "Kitchen.Local"
        assert (config.scheduler.alarm_hour, config.scheduler.alarm_minute) == (7, 0)
        assert config.scheduler.recurrence == "daily"
        assert config.scheduler.enabled is True
        assert config.mqtt.host is None
        assert config.mqtt.port == 1883
        assert config.mqtt.topic_base == "shiftwake/kitchen-local"
        assert config.max_timer_seconds == DEFAULT_MAX_TIMER_SECONDS
        assert config.missed_alarm_grace_seconds == DEFAULT_MISSED_GRACE_SECONDS
        assert config.preview_days == DEFAULT_PREVIEW_DAYS

    def test_full_env(self):
        env = {
            "SHIFTWAKE_HOSTNAME": "bedroom",
            "SHIFTWAKE_ALARM_TIME": "05:30",
            "SHIFTWAKE_RECURRENCE": "every-other-day",
            "SHIFTWAKE_START_DATE": "2024-01-01",
            "SHIFTWAKE_ALARM_ENABLED": "false",
            "SHIFTWAKE_TOPIC_BASE": "home/alarm/",
            "SHIFTWAKE_MAX_TIMER_SECONDS": "3600",
            "SHIFTWAKE_MISSED_GRACE_SECONDS": "120",
            "SHIFTWAKE_PREVIEW_DAYS": "7",
            "MQTT_HOST": " mqtt.local ",
            "MQTT_PORT": "8883",
            "MQTT_USER": "alarm",
            "MQTT_PASS": "secret",
            "MQTT_TLS_ENABLED": "true",
            "MQTT_CA_CERT": "/etc/ssl/ca.pem",
        }

        config = AlarmServiceConfig.from_env(env)

        assert config.scheduler == SchedulerConfig(
            alarm_hour=5,
            alarm_minute=30,
            recurrence="every-other-day",
            start_date=date(2024, 1, 1),
            enabled=False,
        )
        assert config.mqtt.host == "mqtt.local"
        assert config.mqtt.port == 8883
        assert config.mqtt.username == "alarm"
        assert config.mqtt.password == "secret"
        assert config.mqtt.tls_enabled is True
        assert config.mqtt.ca_cert == "/etc/ssl/ca.pem"
        assert config.mqtt.cert is None
        assert config.mqtt.topic_base == "home/alarm"
        assert config.max_timer_seconds == 3600
        assert config.missed_alarm_grace_seconds == 120
        assert config.preview_days == 7

    def test_invalid_values_fall_back(self):
        env = {
            "SHIFTWAKE_HOSTNAME": "bedroom",
            "SHIFTWAKE_ALARM_TIME": "breakfast",
            "SHIFTWAKE_RECURRENCE": "weekly",
            "SHIFTWAKE_START_DATE": "someday",
            "SHIFTWAKE_MAX_TIMER_SECONDS": "5",
            "SHIFTWAKE_MISSED_GRACE_SECONDS": "-10",
            "SHIFTWAKE_PREVIEW_DAYS": "0",
            "MQTT_PORT": "not-a-port",
        }

        config = AlarmServiceConfig.from_env(env)

        assert (config.scheduler.alarm_hour, config.scheduler.alarm_minute) == (7, 0)
        assert config.scheduler.recurrence == "daily"
        assert config.scheduler.start_date == date.today()
        assert config.mqtt.port == 1883
        assert config.max_timer_seconds == 60
        assert config.missed_alarm_grace_seconds == 0
        assert config.preview_days == 1

    def test_alternate_credential_names(self):
        config = AlarmServiceConfig.from_env(
            {"SHIFTWAKE_HOSTNAME": "bedroom", "MQTT_USERNAME": "u", "MQTT_PASSWORD": "p"}
        )
        assert (config.mqtt.username, config.mqtt.password) == ("u", "p")
