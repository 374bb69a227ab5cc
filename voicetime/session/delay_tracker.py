"""
Delay Tracker - response-delay windows with lazy expiry.

At most one delay per session (a new delay replaces the old one). Nothing
runs in the background: expiry is evaluated whenever a caller asks, and an
expired delay is flipped to inactive at that moment and stays inactive.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Dict, Optional

from config import thresholds
from voicetime.errors import VoiceTimeValidationError
from voicetime.session.session_models import Delay
from voicetime.temporal.time_context import TimeContextProvider, get_time_context_provider

logger = logging.getLogger(__name__)


class DelayTracker:
    """
    Per-session response delays.

    Usage:
        tracker = DelayTracker()
        tracker.create_delay(session_id, 5)
        if tracker.has_active_delay(session_id):
            wait = tracker.get_remaining_delay_time(session_id)
    """

    def __init__(self, time_provider: Optional[TimeContextProvider] = None):
        self.time_provider = time_provider or get_time_context_provider()
        self._delays: Dict[str, Delay] = {}
        self._lock = threading.Lock()

    def create_delay(self, session_id: str, delay_seconds: int) -> Delay:
        """Start (or replace) the delay window for a session."""
        _validate_delay(session_id, delay_seconds)

        start = self.time_provider.now_millis()
        delay = Delay(
            session_id=session_id,
            delay_seconds=delay_seconds,
            start_time=start,
            end_time=start + delay_seconds * 1000,
            is_active=True,
        )
        with self._lock:
            replaced = session_id in self._delays
            self._delays[session_id] = delay

        logger.info(
            "Created delay for session %s: %d seconds%s",
            session_id, delay_seconds, " (replaced previous)" if replaced else "",
        )
        return delay.model_copy()

    def has_active_delay(self, session_id: str) -> bool:
        with self._lock:
            delay = self._evaluate(session_id)
            return delay is not None and delay.is_active

    def get_remaining_delay_time(self, session_id: str) -> int:
        """Whole seconds left in the window (rounded up), 0 when absent or expired."""
        with self._lock:
            now = self.time_provider.now_millis()
            delay = self._evaluate(session_id, now)
            if delay is None or not delay.is_active:
                return 0
            return math.ceil((delay.end_time - now) / 1000)

    def get_delay(self, session_id: str) -> Optional[Delay]:
        with self._lock:
            delay = self._evaluate(session_id)
            return delay.model_copy() if delay is not None else None

    def clear_delay(self, session_id: str) -> bool:
        with self._lock:
            return self._delays.pop(session_id, None) is not None

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for sid in list(self._delays) if self._evaluate(sid).is_active)

    def _evaluate(self, session_id: str, now: Optional[int] = None) -> Optional[Delay]:
        """Apply lazy expiry to the stored record. Caller holds the lock."""
        delay = self._delays.get(session_id)
        if delay is None or not delay.is_active:
            return delay

        if now is None:
            now = self.time_provider.now_millis()
        if now >= delay.end_time:
            delay.is_active = False
            logger.debug("Delay for session %s expired", session_id)
        return delay


def _validate_delay(session_id: str, delay_seconds: int) -> None:
    if not session_id:
        raise VoiceTimeValidationError("session_id is required")
    if isinstance(delay_seconds, bool) or not isinstance(delay_seconds, int):
        raise VoiceTimeValidationError(f"delay_seconds must be an integer, got {delay_seconds!r}")
    if delay_seconds < 0:
        raise VoiceTimeValidationError(f"delay_seconds must be >= 0, got {delay_seconds}")
    if delay_seconds > thresholds.MAX_DELAY_SECONDS:
        raise VoiceTimeValidationError(
            f"delay_seconds must be <= {thresholds.MAX_DELAY_SECONDS}, got {delay_seconds}"
        )
