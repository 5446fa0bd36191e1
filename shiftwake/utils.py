"""
Shared utility functions for parsing environment and payload values

Provides common helpers for:
- String parsing: Environment variable conversion (parse_bool, parse_int, parse_float)
- Topic sanitization: Converting hostnames to MQTT-safe topic segments
- Payload flags: Interpreting on/off style MQTT payloads

These utilities are used throughout ShiftWake for configuration parsing and command handling.
"""

from __future__ import annotations

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FLAG_ON = {"on", "true", "1", "yes", "enable", "enabled", "visible", "shown"}
_FLAG_OFF = {"off", "false", "0", "no", "disable", "disabled", "hidden", "blanked"}


def sanitize_hostname_for_topic(hostname: str) -> str:
    """Convert hostnames to MQTT topic-safe segments."""
    cleaned = hostname.strip().lower().replace(".", "-")
    return "".join(ch for ch in cleaned if ch not in "+#/ ") or "shiftwake"


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Interpret env-style booleans."""
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def parse_int(value: str | None, default: int) -> int:
    """Best-effort int parser with fallback."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_float(value: str | None, default: float) -> float:
    """Best-effort float parser with fallback."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_flag(value: str | None) -> bool | None:
    """Interpret an on/off payload; None when the payload is not recognised."""
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _FLAG_ON:
        return True
    if lowered in _FLAG_OFF:
        return False
    return None
