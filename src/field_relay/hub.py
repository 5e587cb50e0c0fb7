"""Fan-out of telemetry snapshots to connected viewers."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from .commands import CommandQueue
from .models import TelemetrySnapshot
from .state import StateStore

LOGGER = logging.getLogger(__name__)

SENSOR_DATA_EVENT = "sensorDataUpdate"
SEND_COMMAND_EVENT = "sendCommand"
COMMAND_STATUS_EVENT = "commandStatus"
ERROR_EVENT = "error"


def make_event(name: str, data: Any) -> dict[str, Any]:
    return {"event": name, "data": data}


class ViewerChannel:
    """Outgoing event buffer for one viewer connection.

    ``offer`` never waits. When the buffer is full the oldest pending
    snapshot is evicted first, since any newer snapshot supersedes it;
    only if no snapshot is pending is the oldest event of any kind dropped.
    """

    def __init__(self, viewer_id: str, maxsize: int = 16) -> None:
        self.viewer_id = viewer_id
        self.maxsize = max(1, int(maxsize))
        self.dropped = 0
        self._pending: deque[dict[str, Any]] = deque()
        self._ready = asyncio.Event()

    def __len__(self) -> int:
        return len(self._pending)

    def offer(self, event: dict[str, Any]) -> None:
        if len(self._pending) >= self.maxsize:
            self._evict()
        self._pending.append(event)
        self._ready.set()

    async def next_event(self) -> dict[str, Any]:
        while not self._pending:
            self._ready.clear()
            await self._ready.wait()
        return self._pending.popleft()

    def _evict(self) -> None:
        for index, queued in enumerate(self._pending):
            if queued.get("event") == SENSOR_DATA_EVENT:
                del self._pending[index]
                break
        else:
            self._pending.popleft()
        self.dropped += 1
        LOGGER.debug("Viewer %s is lagging, dropped %d event(s) so far", self.viewer_id, self.dropped)


class BroadcastHub:
    """Registry of viewer channels plus the viewer side of the command queue."""

    def __init__(self, store: StateStore, commands: CommandQueue, *, queue_size: int = 16) -> None:
        self._store = store
        self._commands = commands
        self._queue_size = queue_size
        self._channels: dict[str, ViewerChannel] = {}

    @property
    def viewer_count(self) -> int:
        return len(self._channels)

    def open_channel(self, viewer_id: str | None = None) -> ViewerChannel:
        channel = ViewerChannel(viewer_id or uuid4().hex[:12], maxsize=self._queue_size)
        self.connect(channel)
        return channel

    def connect(self, channel: ViewerChannel) -> None:
        self._channels[channel.viewer_id] = channel
        # Late joiners get the current state right away, not the history.
        channel.offer(make_event(SENSOR_DATA_EVENT, self._store.current().model_dump()))
        LOGGER.info("Viewer connected: %s (%d total)", channel.viewer_id, len(self._channels))

    def disconnect(self, channel: ViewerChannel) -> None:
        if self._channels.pop(channel.viewer_id, None) is not None:
            LOGGER.info("Viewer disconnected: %s (%d total)", channel.viewer_id, len(self._channels))

    def publish(self, snapshot: TelemetrySnapshot) -> int:
        event = make_event(SENSOR_DATA_EVENT, snapshot.model_dump())
        channels = list(self._channels.values())
        for channel in channels:
            channel.offer(event)
        return len(channels)

    def submit_command(self, channel: ViewerChannel, command: Any) -> dict[str, Any]:
        if not isinstance(command, Mapping):
            LOGGER.warning("Rejected command from viewer %s: %r", channel.viewer_id, command)
            return {"success": False, "message": "Command payload must be a JSON object."}
        LOGGER.info("Command received from viewer %s: %s", channel.viewer_id, command)
        self._commands.enqueue(command)
        return {
            "success": True,
            "message": f"Command '{command.get('command')}' received by server and queued.",
        }
