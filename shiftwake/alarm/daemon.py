"""Long-running alarm service: scheduler + MQTT surface + systemd integration."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime

from shiftwake import systemd_notify

from .commands import AlarmCommandHandler
from .config import AlarmServiceConfig
from .host import LoopHost, VisibilityHub
from .mqtt import AlarmMqtt
from .mqtt_publisher import AlarmStatePublisher
from .scheduler import AlarmScheduler, SchedulerCallbacks
from .visibility import MqttVisibilityBridge

LOGGER = logging.getLogger("shiftwake.daemon")

HEARTBEAT_SECONDS = 30.0


class AlarmDaemon:
    """Wires the alarm scheduler to MQTT and keeps it running until shutdown."""

    def __init__(
        self,
        config: AlarmServiceConfig,
        *,
        mqtt: AlarmMqtt | None = None,
        host: LoopHost | None = None,
        heartbeat_seconds: float = HEARTBEAT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or LOGGER
        self.mqtt = mqtt or AlarmMqtt(config.mqtt)
        self.host = host or LoopHost(VisibilityHub())
        self.visibility: VisibilityHub = self.host.visibility
        self.scheduler = AlarmScheduler(
            self.host,
            max_timer_seconds=config.max_timer_seconds,
            missed_alarm_grace=config.missed_alarm_grace_seconds,
        )
        self.publisher = AlarmStatePublisher(self.mqtt, config.mqtt.topic_base)
        self.callbacks = SchedulerCallbacks(
            on_alarm=self._on_alarm,
            on_next_alarm_update=self._on_next_alarm_update,
            on_visibility_change=self._on_visibility_change,
        )
        self._heartbeat_seconds = max(1.0, heartbeat_seconds)
        self._heartbeat_task: asyncio.Task | None = None
        self._bridge: MqttVisibilityBridge | None = None
        self._commands: AlarmCommandHandler | None = None
        self._stop_event = asyncio.Event()
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        loop = asyncio.get_running_loop()
        await asyncio.to_thread(self.mqtt.connect)
        base_topic = self.config.mqtt.topic_base
        self._bridge = MqttVisibilityBridge(mqtt=self.mqtt, hub=self.visibility, base_topic=base_topic, loop=loop)
        self._bridge.subscribe()
        self._commands = AlarmCommandHandler(
            mqtt=self.mqtt,
            scheduler=self.scheduler,
            base_topic=base_topic,
            loop=loop,
            resume=self.resume,
        )
        self._commands.subscribe()
        self.scheduler.init(self.config.scheduler, self.callbacks)
        self._heartbeat_task = asyncio.create_task(self._heartbeat())
        self._started = True
        systemd_notify.ready()
        self.logger.info("ShiftWake alarm service started (topic base %s)", base_topic)

    async def run(self) -> None:
        await self.start()
        await self._stop_event.wait()

    async def shutdown(self) -> None:
        systemd_notify.stopping()
        self._stop_event.set()
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat_task
            self._heartbeat_task = None
        if self._bridge:
            self._bridge.unsubscribe()
        if self._commands:
            self._commands.unsubscribe()
        self.scheduler.destroy()
        await asyncio.to_thread(self.mqtt.disconnect)
        self._started = False

    def resume(self) -> None:
        """Re-initialize the schedule from the last known config (after a remote ``stop``)."""
        config = self.scheduler.config or self.config.scheduler
        self.scheduler.init(config, self.callbacks)

    def _on_alarm(self) -> None:
        fired_at = self.host.now()
        self.logger.info("Alarm ringing at %s", fired_at.isoformat())
        self.publisher.publish_ringing(fired_at)
        systemd_notify.status(f"Alarm ringing since {fired_at:%H:%M}")

    def _on_next_alarm_update(self, next_alarm: datetime | None) -> None:
        preview = self.scheduler.work_day_preview(days=self.config.preview_days)
        self.publisher.publish_next_alarm(next_alarm)
        self.publisher.publish_state(self.scheduler.config, next_alarm, preview)
        if next_alarm is None:
            systemd_notify.status("No alarm scheduled")
        else:
            systemd_notify.status(f"Next alarm {next_alarm:%a %Y-%m-%d %H:%M}")

    def _on_visibility_change(self, visible: bool) -> None:
        self.publisher.publish_visibility(visible)

    async def _heartbeat(self) -> None:
        while True:
            systemd_notify.watchdog()
            await asyncio.sleep(self._heartbeat_seconds)
