from datetime import datetime, timedelta, timezone

import pytest

from voicetime.integration.task_scheduler import TaskScheduler
from voicetime.temporal.time_context import TimeContextProvider


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0, millis: int = 0) -> None:
        self.current += timedelta(seconds=seconds, milliseconds=millis)


@pytest.fixture
def clock():
    # Wednesday morning
    return FakeClock(datetime(2024, 3, 13, 9, 30, 0, tzinfo=timezone.utc))


@pytest.fixture
def provider(clock):
    return TimeContextProvider(clock=clock, tz="UTC")


@pytest.fixture
def scheduler():
    s = TaskScheduler(num_workers=2)
    yield s
    s.shutdown(wait=True)
