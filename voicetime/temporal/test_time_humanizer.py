import pytest
from datetime import datetime, timezone, timedelta
from voicetime.temporal.time_humanizer import human_time_diff, humanize_duration, time_of_day

def test_human_time_diff_recent():
    now = datetime.now(timezone.utc)
    past = now - timedelta(seconds=30)
    assert human_time_diff(past, now) == "just now"

def test_human_time_diff_days_ago():
    now = datetime.now(timezone.utc)
    past = now - timedelta(days=3)
    assert human_time_diff(past, now) == "3 days ago"

@pytest.mark.parametrize("seconds,expected", [
    (0, "a few seconds"),
    (44, "a few seconds"),
    (60, "a minute"),
    (180, "3 minutes"),
    (50 * 60, "an hour"),
    (5 * 3600, "5 hours"),
    (3 * 86400, "3 days"),
    (30 * 86400, "a month"),
    (400 * 86400, "a year"),
    (3 * 365 * 86400, "3 years"),
])
def test_humanize_duration(seconds, expected):
    assert humanize_duration(seconds) == expected

def _rank(phrase: str) -> tuple[int, int]:
    units = ["second", "minute", "hour", "day", "month", "year"]
    words = phrase.split()
    unit = words[-1].rstrip("s")
    count = 1 if words[0] in ("a", "an") else int(words[0])
    if phrase == "a few seconds":
        count = 0
    return units.index(unit), count

def test_humanize_duration_never_sounds_shorter_for_longer_spans():
    previous = _rank(humanize_duration(0))
    for seconds in range(0, 3 * 365 * 86400, 3571):
        current = _rank(humanize_duration(seconds))
        assert current >= previous
        previous = current

@pytest.mark.parametrize("hour,bucket", [
    (0, "night"), (5, "night"), (6, "morning"), (11, "morning"),
    (12, "afternoon"), (17, "afternoon"), (18, "evening"), (23, "evening"),
])
def test_time_of_day_buckets(hour, bucket):
    assert time_of_day(hour) == bucket
