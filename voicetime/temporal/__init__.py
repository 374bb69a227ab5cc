"""
Temporal Module.

Canonical "now" plus phrase parsing for delay and reminder requests.
"""

from voicetime.temporal.time_context import (
    ElapsedTime,
    TimeContextProvider,
    TimeContextSnapshot,
    get_time_context_provider,
)
from voicetime.temporal.expression_parser import (
    DelayParse,
    ReminderParse,
    TimeExpressionParser,
    get_time_expression_parser,
)

__all__ = [
    "ElapsedTime",
    "TimeContextProvider",
    "TimeContextSnapshot",
    "get_time_context_provider",
    "DelayParse",
    "ReminderParse",
    "TimeExpressionParser",
    "get_time_expression_parser",
]
