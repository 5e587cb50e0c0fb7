"""FIFO queue of operator commands waiting for the field device."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from threading import Lock
from typing import Any

LOGGER = logging.getLogger(__name__)

NO_COMMAND_NAME = "NONE"


def no_command() -> dict[str, Any]:
    return {"command": NO_COMMAND_NAME}


class CommandQueue:
    """Commands are handed out once each, oldest first."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._items: deque[dict[str, Any]] = deque()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def enqueue(self, command: Mapping[str, Any]) -> int:
        item = dict(command)
        with self._lock:
            self._items.append(item)
            depth = len(self._items)
        LOGGER.info("Command queued: %s (depth %d)", item, depth)
        return depth

    def dequeue(self) -> dict[str, Any]:
        with self._lock:
            if not self._items:
                return no_command()
            item = self._items.popleft()
        LOGGER.info("Delivering command to field device: %s", item)
        return item
