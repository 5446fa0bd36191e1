"""Bridge display visibility reports from MQTT into the in-process hub."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from shiftwake.utils import parse_flag

from .host import VisibilityHub

if TYPE_CHECKING:
    from .mqtt import AlarmMqtt

LOGGER = logging.getLogger(__name__)


class MqttVisibilityBridge:
    """Forwards ``<base>/display/visibility`` payloads to a ``VisibilityHub``.

    paho delivers messages on its network thread, so transitions are handed to
    the event loop with ``call_soon_threadsafe``; the hub and the scheduler
    only ever run on the loop thread.
    """

    def __init__(
        self,
        *,
        mqtt: AlarmMqtt,
        hub: VisibilityHub,
        base_topic: str,
        loop: asyncio.AbstractEventLoop,
        logger: logging.Logger | None = None,
    ) -> None:
        self.mqtt = mqtt
        self.hub = hub
        self.loop = loop
        self.logger = logger or LOGGER
        self.topic = f"{base_topic.rstrip('/')}/display/visibility"
        self._subscribed = False

    def subscribe(self) -> None:
        try:
            self.mqtt.subscribe(self.topic, self._handle_payload)
        except RuntimeError as exc:
            self.logger.debug("[visibility] MQTT client not ready for subscription: %s", exc)
            return
        except Exception as exc:
            self.logger.error("[visibility] Failed to subscribe to visibility topic: %s", exc, exc_info=True)
            return
        self._subscribed = True

    def unsubscribe(self) -> None:
        if not self._subscribed:
            return
        self._subscribed = False
        self.mqtt.unsubscribe(self.topic)

    def _handle_payload(self, payload: str) -> None:
        visible = parse_flag(payload)
        if visible is None:
            self.logger.debug("[visibility] Ignoring unrecognised payload: %r", payload)
            return
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.hub.set_visible, visible)
