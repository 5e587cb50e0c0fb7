import pytest
from pydantic import ValidationError

from field_relay.models import TelemetrySnapshot, TelemetryUpdate, normalize_motion, safe_float


@pytest.mark.parametrize("value", ["1", "true", "TRUE", "Detected", "detected", 1, 1.0, True])
def test_motion_detected_values(value) -> None:
    assert normalize_motion(value) == "Detected"


@pytest.mark.parametrize("value", ["0", "false", "", "none", "None", 0, 0.0, 1.5, False, None, "yes"])
def test_motion_other_values(value) -> None:
    assert normalize_motion(value) == "None"


def test_safe_float_rejects_garbage() -> None:
    assert safe_float("25.1") == 25.1
    assert safe_float(" 7 ") == 7.0
    assert safe_float(3) == 3.0
    assert safe_float("abc") is None
    assert safe_float("") is None
    assert safe_float("nan") is None
    assert safe_float("inf") is None
    assert safe_float(True) is None
    assert safe_float([1]) is None
    assert safe_float(10**400) is None


def test_from_payload_sets_only_parsed_fields() -> None:
    update = TelemetryUpdate.from_payload(
        {
            "temperature": "25.1",
            "humidity": "wet",
            "unknown": 12,
            "rainfall": None,
            "diseaseName": "Leaf rust",
            "diseaseConfidence": 0.93,
            "weedDetection": {"boxes": []},
        }
    )
    assert update.model_fields_set == {"temperature", "diseaseName", "diseaseConfidence"}
    assert update.temperature == 25.1
    assert update.diseaseConfidence == "0.93"


def test_from_payload_requires_both_coordinates() -> None:
    assert TelemetryUpdate.from_payload({"latitude": 10}).model_fields_set == set()
    assert TelemetryUpdate.from_payload({"latitude": 10, "longitude": "east"}).model_fields_set == set()
    update = TelemetryUpdate.from_payload({"latitude": "10.5", "longitude": -3})
    assert update.model_fields_set == {"latitude", "longitude"}
    assert (update.latitude, update.longitude) == (10.5, -3.0)


def test_from_payload_accepts_ultrasonic_as_distance() -> None:
    assert TelemetryUpdate.from_payload({"ultrasonic": "12"}).distance == 12.0
    assert TelemetryUpdate.from_payload({"distance": "5", "ultrasonic": "12"}).distance == 5.0


def test_from_payload_ignores_non_mapping() -> None:
    assert TelemetryUpdate.from_payload(["temperature", 1]).model_fields_set == set()


def test_changes_formats_readings() -> None:
    update = TelemetryUpdate.from_payload({"temperature": 25, "acceleration": "-0.126", "ph": "6.85", "motion": "1"})
    assert update.changes() == {"temperature": "25.00", "acceleration": "-0.13", "ph": 6.85, "motion": "Detected"}


def test_snapshot_is_frozen() -> None:
    snapshot = TelemetrySnapshot()
    with pytest.raises(ValidationError):
        snapshot.temperature = "30.00"


def test_null_motion_resolves_to_none() -> None:
    update = TelemetryUpdate.from_payload({"motion": None})
    assert update.model_fields_set == {"motion"}
    assert update.motion == "None"
