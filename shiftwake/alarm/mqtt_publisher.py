"""MQTT publishing for the alarm service.

Publishes the scheduler's observable state for dashboards and the kiosk UI:
- Next alarm instant (retained, plain ISO string)
- Full alarm state snapshot (retained JSON: config, next alarm, work-day preview)
- Ringing events
- Display visibility transitions
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from shiftwake import __version__
from shiftwake.datetime_utils import local_now

from .config import SchedulerConfig
from .mqtt import AlarmMqtt

LOGGER = logging.getLogger(__name__)


class AlarmStatePublisher:
    """Formats alarm state into MQTT messages.

    Stateless: every publish call receives the values it reports, so the
    publisher can be driven directly from scheduler callbacks.
    """

    def __init__(self, mqtt: AlarmMqtt, topic_base: str, logger: logging.Logger | None = None) -> None:
        self.mqtt = mqtt
        self.logger = logger or LOGGER
        base = topic_base.rstrip("/")
        self.next_alarm_topic = f"{base}/alarm/next"
        self.state_topic = f"{base}/alarm/state"
        self.ringing_topic = f"{base}/alarm/ringing"
        self.visibility_topic = f"{base}/alarm/visibility"

    @staticmethod
    def _serialize_instant(value: datetime | None) -> str | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.astimezone()
        return value.isoformat()

    @staticmethod
    def build_state_payload(
        config: SchedulerConfig | None,
        next_alarm: datetime | None,
        preview: Iterable[tuple[date, bool]] = (),
        *,
        updated_at: datetime | None = None,
    ) -> dict[str, Any]:
        return {
            "next_alarm": AlarmStatePublisher._serialize_instant(next_alarm),
            "config": config.to_dict() if config else None,
            "work_days": [{"date": day.isoformat(), "work_day": work_day} for day, work_day in preview],
            "updated_at": AlarmStatePublisher._serialize_instant(updated_at or local_now()),
            "version": __version__,
        }

    def publish_next_alarm(self, next_alarm: datetime | None) -> None:
        self.mqtt.publish(self.next_alarm_topic, self._serialize_instant(next_alarm) or "", retain=True)

    def publish_state(
        self,
        config: SchedulerConfig | None,
        next_alarm: datetime | None,
        preview: Iterable[tuple[date, bool]] = (),
    ) -> None:
        payload = self.build_state_payload(config, next_alarm, preview)
        try:
            message = json.dumps(payload)
        except TypeError:
            self.logger.warning("[mqtt_publisher] Unable to serialize alarm state: %s", payload)
            return
        self.mqtt.publish(self.state_topic, message, retain=True)

    def publish_ringing(self, fired_at: datetime) -> None:
        self.mqtt.publish(
            self.ringing_topic,
            json.dumps({"state": "ringing", "fired_at": self._serialize_instant(fired_at)}),
        )

    def publish_visibility(self, visible: bool) -> None:
        self.mqtt.publish(self.visibility_topic, "visible" if visible else "hidden", retain=True)
