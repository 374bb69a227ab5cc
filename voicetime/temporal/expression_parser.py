"""
Time Expression Parser.

Detects two kinds of requests in raw utterance text:
  1. Response delays   - "wait for 5 seconds", "5 seconds ruko"
  2. Reminders         - "remind me in 10 minutes to check rice"

Both tables are ORDERED: the first row whose pattern matches wins and the
remaining rows are never evaluated. Put specific phrasings above general ones.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
import re

from config import thresholds


@dataclass(frozen=True)
class DelayParse:
    has_delay: bool = False
    delay_seconds: int = 0


@dataclass(frozen=True)
class ReminderParse:
    has_reminder: bool = False
    duration_seconds: int = 0
    task: str = ""


@dataclass(frozen=True)
class TimeExpressions:
    delay: DelayParse
    reminder: ReminderParse


DelayExtractor = Callable[[re.Match], Optional[DelayParse]]
ReminderExtractor = Callable[[re.Match], Optional[ReminderParse]]


def _seconds_from_group(match: re.Match) -> Optional[DelayParse]:
    return DelayParse(has_delay=True, delay_seconds=int(match.group("n")))


def _reminder_from_groups(match: re.Match) -> Optional[ReminderParse]:
    task = match.group("task").strip()
    if not task:
        return None
    unit = match.group("unit").lower()
    seconds = int(match.group("n")) * thresholds.UNIT_SECONDS[unit]
    return ReminderParse(has_reminder=True, duration_seconds=seconds, task=task)


# =============================================================================
# PHRASE TABLES (order is priority)
# =============================================================================

DELAY_PATTERNS: List[Tuple[str, re.Pattern, DelayExtractor]] = [
    ("wait_for", re.compile(r"wait for (?P<n>\d+) seconds?", re.IGNORECASE), _seconds_from_group),
    ("delay_by", re.compile(r"delay (?:response|reply) by (?P<n>\d+) seconds?", re.IGNORECASE), _seconds_from_group),
    ("pause_for", re.compile(r"pause for (?P<n>\d+) seconds?", re.IGNORECASE), _seconds_from_group),
    ("hold_for", re.compile(r"hold for (?P<n>\d+) seconds?", re.IGNORECASE), _seconds_from_group),
    ("wait", re.compile(r"wait (?P<n>\d+) seconds?", re.IGNORECASE), _seconds_from_group),
    # Hinglish
    ("wait_karo", re.compile(r"(?P<n>\d+) seconds? wait karo", re.IGNORECASE), _seconds_from_group),
    ("jawab_do", re.compile(r"(?P<n>\d+) seconds? ke baad jawab do", re.IGNORECASE), _seconds_from_group),
    ("ruko", re.compile(r"(?P<n>\d+) seconds? ruko", re.IGNORECASE), _seconds_from_group),
]

REMINDER_PATTERNS: List[Tuple[str, re.Pattern, ReminderExtractor]] = [
    (
        "remind_me_in",
        re.compile(r"remind me in (?P<n>\d+)\s+(?P<unit>second|minute|hour)s? to (?P<task>.+)", re.IGNORECASE | re.DOTALL),
        _reminder_from_groups,
    ),
    # Hinglish
    (
        "ke_baad_yaad",
        re.compile(r"(?P<n>\d+)\s+(?P<unit>second|minute|hour)s? ke baad yaad dila dena (?P<task>.+)", re.IGNORECASE | re.DOTALL),
        _reminder_from_groups,
    ),
    (
        "baad_task_yaad",
        re.compile(r"(?P<n>\d+)\s+(?P<unit>second|minute|hour)s? baad (?P<task>.+?) yaad dila dena", re.IGNORECASE | re.DOTALL),
        _reminder_from_groups,
    ),
]


class TimeExpressionParser:
    """Stateless, table-driven phrase matcher. Never raises on bad input."""

    def __init__(
        self,
        delay_patterns: Optional[List[Tuple[str, re.Pattern, DelayExtractor]]] = None,
        reminder_patterns: Optional[List[Tuple[str, re.Pattern, ReminderExtractor]]] = None,
    ):
        self.delay_patterns = delay_patterns if delay_patterns is not None else DELAY_PATTERNS
        self.reminder_patterns = reminder_patterns if reminder_patterns is not None else REMINDER_PATTERNS

    def parse_delay(self, text: str) -> DelayParse:
        """
        Detect a response-delay request.

        Examples:
            "wait for 5 seconds"   -> DelayParse(True, 5)
            "5 seconds wait karo"  -> DelayParse(True, 5)
            "hello"                -> DelayParse(False, 0)
        """
        result = self._first_match(text, self.delay_patterns)
        return result if result is not None else DelayParse()

    def parse_reminder(self, text: str) -> ReminderParse:
        """
        Detect a reminder request.

        Examples:
            "remind me in 10 minutes to check rice" -> ReminderParse(True, 600, "check rice")
            "2 minute baad gas band karna yaad dila dena" -> ReminderParse(True, 120, "gas band karna")
        """
        result = self._first_match(text, self.reminder_patterns)
        return result if result is not None else ReminderParse()

    def parse(self, text: str) -> TimeExpressions:
        return TimeExpressions(delay=self.parse_delay(text), reminder=self.parse_reminder(text))

    def matched_pattern(self, text: str, table: str = "delay") -> Optional[str]:
        """Name of the row that wins for this text (None when nothing matches)."""
        patterns = self.delay_patterns if table == "delay" else self.reminder_patterns
        if not isinstance(text, str):
            return None
        for name, pattern, extractor in patterns:
            match = pattern.search(text)
            if match and extractor(match) is not None:
                return name
        return None

    def _first_match(self, text: str, patterns):
        if not isinstance(text, str) or not text:
            return None
        for _name, pattern, extractor in patterns:
            match = pattern.search(text)
            if not match:
                continue
            result = extractor(match)
            if result is not None:
                return result
        return None


_parser_instance: Optional[TimeExpressionParser] = None


def get_time_expression_parser() -> TimeExpressionParser:
    """Get singleton parser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = TimeExpressionParser()
    return _parser_instance
