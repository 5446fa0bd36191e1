import json
import sys

import atheris

with atheris.instrument_imports():
    from shiftwake.alarm.config import parse_config_changes
    from shiftwake.utils import (
        parse_bool,
        parse_flag,
        parse_float,
        parse_int,
        sanitize_hostname_for_topic,
    )


def TestOneInput(data: bytes) -> None:
    """Fuzz env/payload parsing helpers with arbitrary input."""
    value = data.decode("utf-8", errors="ignore")

    # Sanitized topics must never contain MQTT wildcards or separators
    topic = sanitize_hostname_for_topic(value)
    assert topic and not any(ch in topic for ch in "+#/")

    # Parsers with default fallbacks (should never raise)
    parse_bool(value)
    parse_flag(value)
    parse_int(value, default=0)
    parse_float(value, default=0.0)

    # Remote config payloads: only ValueError is an accepted failure
    try:
        payload = json.loads(value)
    except (json.JSONDecodeError, RecursionError):
        return
    if isinstance(payload, dict):
        try:
            parse_config_changes(payload)
        except ValueError:
            pass  # Expected for invalid input


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
