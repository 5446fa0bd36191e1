import sys
from datetime import date, datetime, timedelta

import atheris

with atheris.instrument_imports():
    from shiftwake.alarm.config import SchedulerConfig
    from shiftwake.alarm.scheduler import AlarmScheduler, is_work_day, next_alarm_after
    from shiftwake.datetime_utils import parse_time_of_day, parse_time_string

_EPOCH = datetime(2020, 1, 1)


def TestOneInput(data: bytes) -> None:
    """Fuzz next-alarm computation with arbitrary configs and reference instants."""
    fdp = atheris.FuzzedDataProvider(data)
    config = SchedulerConfig(
        alarm_hour=fdp.ConsumeIntInRange(0, 23),
        alarm_minute=fdp.ConsumeIntInRange(0, 59),
        recurrence="every-other-day" if fdp.ConsumeBool() else "daily",
        start_date=date(2020, 1, 1) + timedelta(days=fdp.ConsumeIntInRange(0, 3650)),
        enabled=fdp.ConsumeBool(),
    )
    reference = _EPOCH + timedelta(minutes=fdp.ConsumeIntInRange(0, 10 * 365 * 24 * 60))

    result = next_alarm_after(config, reference)
    if result is not None:
        # Must be strictly later and land on a work day.
        assert result > reference.astimezone()
        assert is_work_day(config, result)
        assert result - reference.astimezone() <= timedelta(days=3)

    # Out-of-range values must not escape as exceptions from the scheduler.
    scheduler = AlarmScheduler()
    scheduler._config = SchedulerConfig(
        alarm_hour=fdp.ConsumeInt(4),
        alarm_minute=fdp.ConsumeInt(4),
        recurrence="every-other-day",
        start_date=config.start_date,
    )
    scheduler.calculate_next_alarm_time(reference)

    text = fdp.ConsumeUnicodeNoSurrogates(16)
    parse_time_of_day(text)
    try:
        parse_time_string(text)
    except ValueError:
        pass  # Expected for invalid input


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
