"""
Alarm scheduling engine and service wiring

This package provides the alarm clock functionality for ShiftWake including:

- Recurrence: "daily" and "every-other-day" shift patterns anchored on a start date
- Scheduling: One armed countdown at a time, re-armed after every firing
- Visibility recovery: Re-validation of the countdown when the display wakes up
- MQTT: Next-alarm state publishing and remote configuration commands

Key modules:
- scheduler: AlarmScheduler and the pure next-alarm computation
- host: Event-loop clock, countdown and visibility capabilities
- config: Scheduler and daemon configuration from environment variables
- daemon: Long-running alarm service
"""

from __future__ import annotations

__all__ = [
    "commands",
    "config",
    "daemon",
    "host",
    "mqtt",
    "mqtt_publisher",
    "scheduler",
    "visibility",
]
