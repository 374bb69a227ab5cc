from __future__ import annotations
from datetime import datetime, timezone

from config import thresholds

DAY_NAMES = ["Monday","Tuesday","Wednesday","Thursday","Friday","Saturday","Sunday"]

def _round_half_up(value: float) -> int:
    return int(value + 0.5)

def humanize_duration(seconds: float) -> str:
    """Coarse natural-language duration ("a few seconds", "3 minutes", "an hour")."""
    seconds = max(0.0, float(seconds))

    if seconds < thresholds.HUMANIZE_FEW_SECONDS:
        return "a few seconds"
    if seconds < thresholds.HUMANIZE_MINUTE:
        return "a minute"
    if seconds < thresholds.HUMANIZE_MINUTES:
        return f"{_round_half_up(seconds / 60)} minutes"
    if seconds < thresholds.HUMANIZE_HOUR:
        return "an hour"
    if seconds < thresholds.HUMANIZE_HOURS:
        return f"{_round_half_up(seconds / 3600)} hours"
    if seconds < thresholds.HUMANIZE_DAY:
        return "a day"
    if seconds < thresholds.HUMANIZE_DAYS:
        return f"{_round_half_up(seconds / 86400)} days"
    if seconds < thresholds.HUMANIZE_MONTH:
        return "a month"
    if seconds < thresholds.HUMANIZE_MONTHS:
        return f"{_round_half_up(seconds / (30 * 86400))} months"
    if seconds < thresholds.HUMANIZE_YEAR:
        return "a year"
    return f"{_round_half_up(seconds / (365 * 86400))} years"

def human_time_diff(past: datetime, now: datetime) -> str:
    if past.tzinfo is None:
        past = past.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    delta = now - past
    seconds = int(delta.total_seconds())
    days = delta.days

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        m = seconds // 60
        return f"{m} minute{'s' if m != 1 else ''} ago"
    if days == 0:
        h = seconds // 3600
        return f"{h} hour{'s' if h != 1 else ''} ago"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        w = days // 7
        return f"{w} week{'s' if w != 1 else ''} ago"
    if days < 365:
        mo = days // 30
        return f"{mo} month{'s' if mo != 1 else ''} ago"
    y = days // 365
    return f"{y} year{'s' if y != 1 else ''} ago"

def time_of_day(hour: int) -> str:
    for start_hour, label in thresholds.TIME_OF_DAY_BUCKETS:
        if hour >= start_hour:
            return label
    return "night"
