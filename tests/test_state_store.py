from datetime import datetime, timedelta, timezone

from field_relay.models import TelemetryUpdate
from field_relay.state import StateStore


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def _without_timestamp(snapshot) -> dict:
    data = snapshot.model_dump()
    data.pop("timestamp")
    return data


def test_partial_update_leaves_other_fields_untouched() -> None:
    store = StateStore(clock=FakeClock())
    store.apply({"humidity": "41", "motion": "1", "latitude": 1, "longitude": 2})
    before = _without_timestamp(store.current())

    after = _without_timestamp(store.apply({"temperature": 25}))

    assert after.pop("temperature") == "25.00"
    before.pop("temperature")
    assert after == before


def test_reapplying_same_update_is_idempotent() -> None:
    store = StateStore(clock=FakeClock())
    first = store.apply({"temperature": 25})
    second = store.apply({"temperature": 25})
    assert _without_timestamp(first) == _without_timestamp(second)
    assert first.timestamp != second.timestamp


def test_numeric_formatting() -> None:
    store = StateStore()
    snapshot = store.apply({"temperature": "25.1", "soil_moisture": 3, "rainfall": "1.5", "n": "82"})
    assert snapshot.temperature == "25.10"
    assert snapshot.soil_moisture == "3.00"
    assert snapshot.rainfall == 1.5
    assert snapshot.n == 82.0


def test_malformed_value_keeps_previous_reading() -> None:
    store = StateStore()
    store.apply({"temperature": "20"})
    snapshot = store.apply({"temperature": "hot", "humidity": "55"})
    assert snapshot.temperature == "20.00"
    assert snapshot.humidity == "55.00"


def test_single_coordinate_does_not_move_location() -> None:
    store = StateStore()
    store.apply({"latitude": 5, "longitude": 6})
    snapshot = store.apply({"latitude": 10})
    assert (snapshot.latitude, snapshot.longitude) == (5.0, 6.0)


def test_timestamp_is_always_server_stamped() -> None:
    clock = FakeClock()
    store = StateStore(clock=clock)
    snapshot = store.apply({"timestamp": "1999-01-01T00:00:00Z"})
    assert snapshot.timestamp == clock.now.isoformat()


def test_apply_replaces_snapshot_instead_of_mutating() -> None:
    store = StateStore()
    original = store.current()
    updated = store.apply(TelemetryUpdate.from_payload({"motion": "detected"}))
    assert updated is store.current()
    assert updated is not original
    assert original.motion == "None"
    assert updated.motion == "Detected"
