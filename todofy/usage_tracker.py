"""
Sliding-window token accounting shared by every summarization request.

The ledger is in-memory only and starts empty on every process start.
"""

from collections import deque
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Deque, Optional

from .models import LimitViolation, UsageRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageTracker:
    """
    Tracks token usage within a trailing window and enforces a ceiling.

    A limit of 0 or below disables enforcement; usage is still recorded and
    reported.
    """

    def __init__(
        self,
        window: timedelta,
        limit: int,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            window: How far back recorded usage still counts.
            limit: Maximum tokens allowed inside the window.
            clock: Time source; tests pass a fixed or stepping callable.
        """
        self.window = window
        self.limit = limit
        self.clock = clock or _utcnow
        self._lock = Lock()
        self._records: Deque[UsageRecord] = deque()

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def _prune(self) -> None:
        """Drop records older than the window. Caller holds the lock."""
        cutoff = self.clock() - self.window
        while self._records and self._records[0].timestamp < cutoff:
            self._records.popleft()

    def _total(self) -> int:
        return sum(r.cost for r in self._records)

    def current_usage(self) -> int:
        with self._lock:
            self._prune()
            return self._total()

    def check_limit(self, tokens: int) -> Optional[LimitViolation]:
        """
        Return a LimitViolation if using `tokens` more would pass the limit,
        or None if the request fits (or enforcement is disabled).

        The violation carries the window total read under the same lock as
        the comparison. Nothing is recorded; call record() once the gated
        call succeeded.
        """
        if self.limit <= 0:
            return None

        with self._lock:
            self._prune()
            total = self._total()
            if total + tokens > self.limit:
                return LimitViolation(
                    current_usage=total,
                    requested=tokens,
                    limit=self.limit,
                    window=self.window,
                )
            return None

    def record(self, tokens: int) -> UsageRecord:
        """Add a usage entry stamped with the current time."""
        with self._lock:
            rec = UsageRecord(timestamp=self.clock(), cost=tokens)
            self._records.append(rec)
            return rec

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
