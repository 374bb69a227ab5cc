from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from voicetime.temporal.time_context import TimeContextProvider


def test_now_snapshot_fields(provider, clock):
    ctx = provider.now()
    assert ctx.timestamp == int(clock.current.timestamp() * 1000)
    assert ctx.iso == "2024-03-13T09:30:00.000Z"
    assert ctx.day_of_week == "Wednesday"
    assert ctx.time_of_day == "morning"
    assert ctx.readable == "March 13 2024, 09:30:00 AM"


def test_snapshot_is_fresh_and_frozen(provider, clock):
    first = provider.now()
    clock.advance(seconds=9 * 3600)
    second = provider.now()
    assert first.time_of_day == "morning"
    assert second.time_of_day == "evening"
    assert second.timestamp - first.timestamp == 9 * 3600 * 1000
    with pytest.raises(FrozenInstanceError):
        first.timestamp = 0


@pytest.mark.parametrize("hour, minute, expected", [
    (17, 59, "afternoon"),
    (18, 0, "evening"),
    (5, 59, "night"),
    (6, 0, "morning"),
    (12, 0, "afternoon"),
    (0, 0, "night"),
])
def test_time_of_day_bucket_edges(clock, hour, minute, expected):
    clock.current = datetime(2024, 3, 13, hour, minute, tzinfo=timezone.utc)
    assert TimeContextProvider(clock=clock, tz="UTC").now().time_of_day == expected


def test_time_of_day_uses_configured_timezone(clock):
    clock.current = datetime(2024, 3, 13, 2, 0, tzinfo=timezone.utc)
    kolkata = TimeContextProvider(clock=clock, tz="Asia/Kolkata")
    assert kolkata.now().time_of_day == "morning"  # 07:30 local
    assert kolkata.now().timestamp == TimeContextProvider(clock=clock, tz="UTC").now().timestamp


def test_elapsed_since(provider, clock):
    start = provider.now_millis()
    clock.advance(seconds=185, millis=400)
    elapsed = provider.elapsed_since(start)
    assert elapsed.millis == 185_400
    assert elapsed.seconds == 185
    assert elapsed.minutes == 3
    assert elapsed.hours == 0
    assert elapsed.human_readable == "3 minutes"


def test_elapsed_since_future_timestamp_is_zero(provider):
    elapsed = provider.elapsed_since(provider.now_millis() + 10_000)
    assert elapsed.millis == 0
    assert elapsed.human_readable == "a few seconds"


def test_time_since_and_is_recent(provider, clock):
    created = provider.now_millis()
    clock.advance(seconds=2 * 3600)
    assert provider.time_since(created) == "2 hours ago"
    assert provider.is_recent(created)
    clock.advance(seconds=24 * 3600)
    assert not provider.is_recent(created)
