"""Lightweight systemd sd_notify helper (no external dependencies).

Sends notifications to systemd via the ``$NOTIFY_SOCKET`` environment
variable.  All functions are safe no-ops when the variable is unset
(e.g. during development or in non-systemd environments).
"""

from __future__ import annotations

import logging
import os
import socket

_logger = logging.getLogger(__name__)


def _notify(message: str) -> bool:
    addr = os.environ.get("NOTIFY_SOCKET")
    if not addr:
        return False
    if addr.startswith("@"):
        addr = "\0" + addr[1:]  # abstract socket
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as sock:
            sock.sendto(message.encode(), addr)
    except OSError as exc:
        _logger.debug("[sd_notify] Failed to send '%s': %s", message, exc)
        return False
    return True


def ready() -> None:
    """Tell systemd the alarm service has finished starting up."""
    _notify("READY=1")


def watchdog() -> None:
    """Reset the systemd watchdog timer."""
    _notify("WATCHDOG=1")


def status(text: str) -> None:
    """Publish a one-line status (shown by ``systemctl status``)."""
    single_line = " ".join(text.split())
    _notify(f"STATUS={single_line}")


def stopping() -> None:
    _notify("STOPPING=1")
