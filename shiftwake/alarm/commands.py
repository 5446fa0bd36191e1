"""Remote alarm commands received over MQTT."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .config import parse_config_changes

if TYPE_CHECKING:
    from .mqtt import AlarmMqtt
    from .scheduler import AlarmScheduler

LOGGER = logging.getLogger(__name__)

_STOP_COMMANDS = {"stop", "off"}
_RESUME_COMMANDS = {"start", "resume", "on"}


class AlarmCommandHandler:
    """Applies configuration changes and stop/resume commands to the scheduler.

    Topics:
    - ``<base>/alarm/config/set``: JSON object with any subset of the config
      fields (snake_case or camelCase, or ``time`` as ``HH:MM``)
    - ``<base>/alarm/command``: ``stop`` or ``start``/``resume``

    Payloads arrive on the paho network thread; the resulting scheduler calls
    are scheduled onto the event loop.
    """

    def __init__(
        self,
        *,
        mqtt: AlarmMqtt,
        scheduler: AlarmScheduler,
        base_topic: str,
        loop: asyncio.AbstractEventLoop,
        resume: Callable[[], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self.mqtt = mqtt
        self.scheduler = scheduler
        self.loop = loop
        self.logger = logger or LOGGER
        self._resume = resume
        base = base_topic.rstrip("/")
        self.config_topic = f"{base}/alarm/config/set"
        self.command_topic = f"{base}/alarm/command"

    def subscribe(self) -> None:
        try:
            self.mqtt.subscribe(self.config_topic, self._handle_config)
            self.mqtt.subscribe(self.command_topic, self._handle_command)
        except RuntimeError as exc:
            self.logger.debug("[commands] MQTT client not ready for subscription: %s", exc)
        except Exception as exc:
            self.logger.error("[commands] Failed to subscribe to alarm command topics: %s", exc, exc_info=True)

    def unsubscribe(self) -> None:
        self.mqtt.unsubscribe(self.config_topic)
        self.mqtt.unsubscribe(self.command_topic)

    def parse_config_payload(self, payload: str) -> dict[str, Any] | None:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            self.logger.warning("[commands] Ignoring malformed config payload %r: %s", payload, exc)
            return None
        if not isinstance(data, dict):
            self.logger.warning("[commands] Config payload must be a JSON object: %r", payload)
            return None
        try:
            changes = parse_config_changes(data)
        except ValueError as exc:
            self.logger.warning("[commands] Rejected config payload %r: %s", payload, exc)
            return None
        if not changes:
            self.logger.debug("[commands] Config payload carried no known fields: %r", payload)
            return None
        return changes

    def _handle_config(self, payload: str) -> None:
        changes = self.parse_config_payload(payload)
        if changes is None:
            return
        self.logger.info("[commands] Applying config change: %s", ", ".join(sorted(changes)))
        self._call_on_loop(self.scheduler.update_config, changes)

    def _handle_command(self, payload: str) -> None:
        command = payload.strip().lower()
        if command in _STOP_COMMANDS:
            self.logger.info("[commands] Stopping alarm schedule")
            self._call_on_loop(self.scheduler.stop)
        elif command in _RESUME_COMMANDS:
            self.logger.info("[commands] Resuming alarm schedule")
            self._call_on_loop(self._resume)
        else:
            self.logger.debug("[commands] Unknown alarm command: %r", payload)

    def _call_on_loop(self, func: Callable[..., Any], *args: Any) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(func, *args)
