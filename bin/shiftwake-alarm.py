#!/usr/bin/env python3
"""ShiftWake alarm scheduling daemon."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal

from shiftwake.alarm.config import AlarmServiceConfig
from shiftwake.alarm.daemon import AlarmDaemon

LOGGER = logging.getLogger("shiftwake-alarm")


async def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = AlarmServiceConfig.from_env()
    daemon = AlarmDaemon(config)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _handle_signal(signum: int) -> None:
        LOGGER.info("Received signal %s, shutting down", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    run_task = asyncio.create_task(daemon.run())
    await stop_event.wait()
    await daemon.shutdown()
    run_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await run_task


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
