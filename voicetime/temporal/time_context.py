"""
Time Context Provider - one canonical "now" for every temporal computation.

Every component (delays, reminders, sessions) asks the provider for a fresh
snapshot instead of reading the wall clock directly, so a single call works
against one consistent instant.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from config.settings import settings
from voicetime.temporal.time_humanizer import (
    DAY_NAMES,
    human_time_diff,
    humanize_duration,
    time_of_day,
)

Clock = Callable[[], datetime]


def _system_clock() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def from_millis(ts: int) -> datetime:
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class TimeContextSnapshot:
    """Immutable view of a single instant."""
    timestamp: int  # epoch millis
    iso: str
    readable: str
    day_of_week: str
    time_of_day: str  # night | morning | afternoon | evening

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ElapsedTime:
    millis: int
    seconds: int
    minutes: int
    hours: int
    human_readable: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TimeContextProvider:
    """
    Produces TimeContextSnapshot / ElapsedTime values from an injectable clock.

    Usage:
        provider = TimeContextProvider()
        ctx = provider.now()
        elapsed = provider.elapsed_since(session.start_time)
    """

    def __init__(self, clock: Optional[Clock] = None, tz: Optional[str] = None):
        self._clock = clock or _system_clock
        self.tzinfo = ZoneInfo(tz or settings.timezone)

    def current_datetime(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tzinfo)

    def now_millis(self) -> int:
        return to_millis(self.current_datetime())

    def now(self) -> TimeContextSnapshot:
        local = self.current_datetime()
        return TimeContextSnapshot(
            timestamp=to_millis(local),
            iso=local.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            readable=local.strftime("%B %d %Y, %I:%M:%S %p"),
            day_of_week=DAY_NAMES[local.weekday()],
            time_of_day=time_of_day(local.hour),
        )

    def elapsed_since(self, past_timestamp: int) -> ElapsedTime:
        """
        Elapsed time between an epoch-millis timestamp and now.

        Negative spans (timestamp in the future) are clamped to zero.
        """
        millis = max(0, self.now_millis() - int(past_timestamp))
        return ElapsedTime(
            millis=millis,
            seconds=millis // 1000,
            minutes=millis // 60_000,
            hours=millis // 3_600_000,
            human_readable=humanize_duration(millis / 1000),
        )

    def time_since(self, past_timestamp: int) -> str:
        """Relative phrase such as "3 minutes ago"."""
        return human_time_diff(from_millis(int(past_timestamp)), self.current_datetime())

    def is_recent(self, past_timestamp: int, hours: int = 24) -> bool:
        return self.current_datetime() - from_millis(int(past_timestamp)) < timedelta(hours=hours)


_provider_instance: Optional[TimeContextProvider] = None


def get_time_context_provider() -> TimeContextProvider:
    """Get singleton time context provider."""
    global _provider_instance
    if _provider_instance is None:
        _provider_instance = TimeContextProvider()
    return _provider_instance
