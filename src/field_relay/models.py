"""Telemetry snapshot and partial update models.

:class:`TelemetrySnapshot` is the full record pushed to viewers. It is frozen:
a new snapshot replaces the old one on every ingest.

:class:`TelemetryUpdate` is the explicit optional-field view of one ingest
payload. Only the fields that were present *and* parsed are set on it, so
``model_fields_set`` is exactly what the store will overwrite.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

LOGGER = logging.getLogger(__name__)

MOTION_DETECTED = "Detected"
MOTION_NONE = "None"
_MOTION_TRUE_VALUES = frozenset({"1", "true", "detected"})

# Readings stored as two-decimal strings.
FORMATTED_FIELDS = ("temperature", "humidity", "soil_moisture", "distance", "acceleration")
# Readings stored as plain floats.
NUMERIC_FIELDS = ("rainfall", "n", "p", "k", "ph")
ANALYTICS_FIELDS = (
    "diseaseName",
    "diseaseConfidence",
    "yieldPredicted",
    "yieldRecommendations",
    "weedDetection",
)

# Older firmware reports the range finder as "ultrasonic".
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "distance": ("distance", "ultrasonic"),
}

MotionState = Literal["Detected", "None"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def safe_float(value: Any) -> float | None:
    """Parse a numeric reading, returning ``None`` when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(result):
        return None
    return result


def normalize_motion(value: Any) -> MotionState:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if str(value).strip().lower() in _MOTION_TRUE_VALUES:
        return MOTION_DETECTED
    return MOTION_NONE


def format_reading(value: float) -> str:
    return f"{value:.2f}"


def _lookup(payload: Mapping[str, Any], name: str) -> Any:
    for key in FIELD_ALIASES.get(name, (name,)):
        value = payload.get(key)
        if value is not None:
            return value
    return None


class TelemetrySnapshot(BaseModel):
    """Latest known state of the field device and its derived analytics."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    temperature: str = "--"
    humidity: str = "--"
    rainfall: float | str = "--"
    soil_moisture: str = "--"
    distance: str = "--"
    acceleration: str = "--"
    motion: MotionState = MOTION_NONE
    latitude: float = 31.4677
    longitude: float = 74.2728
    n: float = 80.0
    p: float = 40.0
    k: float = 60.0
    ph: float = 6.5
    diseaseName: str = "N/A"
    diseaseConfidence: str = "N/A"
    yieldPredicted: str = "N/A"
    yieldRecommendations: str = "N/A"
    weedDetection: str = "N/A"
    timestamp: str = Field(default_factory=_now_iso)


class TelemetryUpdate(BaseModel):
    """Sparse update for :class:`TelemetrySnapshot`; unset fields are left untouched."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    temperature: float | None = None
    humidity: float | None = None
    rainfall: float | None = None
    soil_moisture: float | None = None
    distance: float | None = None
    acceleration: float | None = None
    motion: MotionState | None = None
    latitude: float | None = None
    longitude: float | None = None
    n: float | None = None
    p: float | None = None
    k: float | None = None
    ph: float | None = None
    diseaseName: str | None = None
    diseaseConfidence: str | None = None
    yieldPredicted: str | None = None
    yieldRecommendations: str | None = None
    weedDetection: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> TelemetryUpdate:
        """Build an update from a raw device payload.

        Unknown keys are ignored. A value that cannot be parsed leaves its
        field unset instead of failing the whole update. ``None`` counts as
        "not supplied", except for motion where it normalizes to ``"None"``.
        Latitude and longitude are only taken together.
        """
        if not isinstance(payload, Mapping):
            return cls()

        values: dict[str, Any] = {}

        for name in FORMATTED_FIELDS + NUMERIC_FIELDS:
            raw = _lookup(payload, name)
            if raw is None:
                continue
            parsed = safe_float(raw)
            if parsed is None:
                LOGGER.debug("Skipping unparseable %s=%r", name, raw)
                continue
            values[name] = parsed

        # Any supplied motion value, null included, resolves to Detected or None.
        if "motion" in payload:
            values["motion"] = normalize_motion(payload["motion"])

        latitude = safe_float(payload.get("latitude"))
        longitude = safe_float(payload.get("longitude"))
        if latitude is not None and longitude is not None:
            values["latitude"] = latitude
            values["longitude"] = longitude
        elif "latitude" in payload or "longitude" in payload:
            LOGGER.debug(
                "Ignoring incomplete geolocation pair: latitude=%r longitude=%r",
                payload.get("latitude"),
                payload.get("longitude"),
            )

        for name in ANALYTICS_FIELDS:
            raw = payload.get(name)
            if isinstance(raw, str):
                values[name] = raw
            elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
                values[name] = str(raw)
            elif raw is not None:
                LOGGER.debug("Skipping non-scalar %s=%r", name, raw)

        return cls(**values)

    def changes(self) -> dict[str, Any]:
        """Snapshot field values this update writes, with readings formatted."""
        result: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if name in FORMATTED_FIELDS:
                value = format_reading(value)
            result[name] = value
        return result
