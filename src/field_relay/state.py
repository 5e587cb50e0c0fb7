"""In-memory store for the current telemetry snapshot."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from .models import TelemetrySnapshot, TelemetryUpdate

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateStore:
    """Owns the single current :class:`TelemetrySnapshot`.

    Updates copy the current snapshot, overwrite the supplied fields and swap
    the reference under a lock. Readers always see a complete snapshot.
    """

    def __init__(
        self,
        initial: TelemetrySnapshot | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._clock = clock or _utcnow
        self._lock = Lock()
        if initial is None:
            initial = TelemetrySnapshot(timestamp=self._clock().isoformat())
        self._snapshot = initial

    def current(self) -> TelemetrySnapshot:
        return self._snapshot

    def apply(self, update: TelemetryUpdate | Mapping[str, Any]) -> TelemetrySnapshot:
        if not isinstance(update, TelemetryUpdate):
            update = TelemetryUpdate.from_payload(update)
        changes = update.changes()
        with self._lock:
            changes["timestamp"] = self._clock().isoformat()
            snapshot = self._snapshot.model_copy(update=changes)
            self._snapshot = snapshot
        LOGGER.debug("Applied telemetry update: %s", sorted(changes))
        return snapshot
