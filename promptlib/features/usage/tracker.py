"""
promptlib/features/usage/tracker.py

Usage history tracker.

Keeps an append-only log of prompt uses for one user, stored as a single JSON
blob under the `prompt_history` namespace:

    [{"promptId": "...", "timestamp": 1718000000000, "count": 3}, ...]

Rules:
- Same prompt on the same local calendar day collapses into one record
  (count incremented, timestamp bumped to now)
- Records older than 90 days are pruned on every write and ignored on read
- A malformed blob reads as an empty log; a failed write is logged and dropped
"""

from collections import Counter
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Optional
import logging

from pydantic import TypeAdapter, ValidationError

from promptlib.features.usage.stores import BlobStore, BlobStoreError
from promptlib.models.usage import DailyCopies, PromptStats, PromptUseCount, UsageHistoryItem

logger = logging.getLogger("promptlib")

STORAGE_KEY = "prompt_history"
RETENTION_DAYS = 90
MAX_RECENT_PROMPTS = 10
MAX_MOST_USED = 10
DAY_MS = 24 * 60 * 60 * 1000

_history_adapter = TypeAdapter(List[UsageHistoryItem])


def to_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


class UsageTracker:
    """Usage history for one user over a blob store."""

    def __init__(self, store: BlobStore, tz: tzinfo = timezone.utc, *, user_id: Optional[str] = None):
        self.store = store
        self.tz = tz
        self.user_id = user_id

    def _now(self, now: Optional[datetime]) -> datetime:
        current = now or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def _today_start_ms(self, now: datetime) -> int:
        return to_millis(_local_midnight(now.astimezone(self.tz).date(), self.tz))

    def _month_start_ms(self, now: datetime) -> int:
        return to_millis(_local_midnight(now.astimezone(self.tz).date().replace(day=1), self.tz))

    def _load(self) -> List[UsageHistoryItem]:
        try:
            payload = self.store.read(STORAGE_KEY)
        except BlobStoreError as e:
            logger.warning("usage.history_read_failed", extra={"user_id": self.user_id, "error_message": str(e)})
            return []
        if not payload:
            return []
        try:
            return _history_adapter.validate_json(payload)
        except ValidationError:
            logger.warning("usage.history_malformed", extra={"user_id": self.user_id})
            return []

    def _retained(self, history: List[UsageHistoryItem], now: datetime) -> List[UsageHistoryItem]:
        cutoff = to_millis(now) - RETENTION_DAYS * DAY_MS
        return [item for item in history if item.timestamp >= cutoff]

    def all_history(self, now: Optional[datetime] = None) -> List[UsageHistoryItem]:
        """Retained history records in stored order."""
        return self._retained(self._load(), self._now(now))

    def record_use(self, prompt_id: str, now: Optional[datetime] = None) -> None:
        """
        Record one use of `prompt_id`.

        Never raises on storage problems; the event is lost and logged instead.
        """
        current = self._now(now)
        now_ms = to_millis(current)
        today_start = self._today_start_ms(current)

        history = self._load()
        existing = next(
            (item for item in history if item.prompt_id == prompt_id and item.timestamp >= today_start),
            None,
        )
        if existing is not None:
            existing.count += 1
            existing.timestamp = now_ms
        else:
            history.append(UsageHistoryItem(prompt_id=prompt_id, timestamp=now_ms, count=1))

        history = self._retained(history, current)
        payload = _history_adapter.dump_json(history, by_alias=True).decode("utf-8")
        try:
            self.store.write(STORAGE_KEY, payload)
        except BlobStoreError as e:
            logger.error(
                "usage.history_write_failed",
                extra={"user_id": self.user_id, "prompt_id": prompt_id, "error_message": str(e)},
            )

    def compute_stats(self, now: Optional[datetime] = None) -> PromptStats:
        current = self._now(now)
        history = self._retained(self._load(), current)
        today_start = self._today_start_ms(current)
        month_start = self._month_start_ms(current)

        totals: Counter = Counter()
        for item in history:
            totals[item.prompt_id] += item.count
        # most_common keeps first-seen order for ties
        most_used = [PromptUseCount(prompt_id=pid, count=n) for pid, n in totals.most_common(MAX_MOST_USED)]

        recent: List[str] = []
        for item in sorted(history, key=lambda i: i.timestamp, reverse=True):
            if item.prompt_id not in recent:
                recent.append(item.prompt_id)
            if len(recent) >= MAX_RECENT_PROMPTS:
                break

        return PromptStats(
            total_copies=sum(item.count for item in history),
            today_copies=sum(item.count for item in history if item.timestamp >= today_start),
            this_month_copies=sum(item.count for item in history if item.timestamp >= month_start),
            most_used_prompts=most_used,
            recent_prompts=recent,
        )

    def daily_stats(self, days: int = 30, now: Optional[datetime] = None) -> List[DailyCopies]:
        """Copies per local day for the last `days` days, oldest first."""
        current = self._now(now)
        history = self._retained(self._load(), current)
        today = current.astimezone(self.tz).date()

        out: List[DailyCopies] = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            start = to_millis(_local_midnight(day, self.tz))
            end = to_millis(_local_midnight(day + timedelta(days=1), self.tz))
            copies = sum(item.count for item in history if start <= item.timestamp < end)
            out.append(DailyCopies(date=f"{day.month}/{day.day}", copies=copies))
        return out
