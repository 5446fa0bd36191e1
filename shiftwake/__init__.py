"""
ShiftWake - shift-aware alarm clock service package

This is the root package for ShiftWake, containing the alarm scheduling engine
and the shared helpers used by the alarm daemon.

Core modules:
- alarm: Alarm scheduling engine, host capabilities, MQTT bridge and daemon
- datetime_utils: Local-clock and calendar-day arithmetic
- utils: Environment value parsing helpers
- systemd_notify: sd_notify readiness/watchdog helper
"""

__version__ = "0.4.0"
