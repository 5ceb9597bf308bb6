"""
Search history log.

Stored as one JSON blob per user under the `search_history` namespace,
newest first, at most 20 entries. Repeated queries (case-insensitive) bump the
existing entry instead of adding a new one.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from pydantic import TypeAdapter, ValidationError

from promptlib.features.usage.stores import BlobStore, BlobStoreError
from promptlib.features.usage.tracker import to_millis
from promptlib.models.usage import SearchHistoryItem

logger = logging.getLogger("promptlib")

STORAGE_KEY = "search_history"
MAX_HISTORY_ITEMS = 20
SHORTLIST = 5

_adapter = TypeAdapter(List[SearchHistoryItem])


class SearchHistory:
    def __init__(self, store: BlobStore, *, user_id: Optional[str] = None):
        self.store = store
        self.user_id = user_id

    def items(self) -> List[SearchHistoryItem]:
        """All entries, newest first."""
        try:
            payload = self.store.read(STORAGE_KEY)
        except BlobStoreError as e:
            logger.warning("search.history_read_failed", extra={"user_id": self.user_id, "error_message": str(e)})
            return []
        if not payload:
            return []
        try:
            history = _adapter.validate_json(payload)
        except ValidationError:
            logger.warning("search.history_malformed", extra={"user_id": self.user_id})
            return []
        return sorted(history, key=lambda i: i.timestamp, reverse=True)

    def _save(self, history: List[SearchHistoryItem]) -> None:
        try:
            self.store.write(STORAGE_KEY, _adapter.dump_json(history).decode("utf-8"))
        except BlobStoreError as e:
            logger.error("search.history_write_failed", extra={"user_id": self.user_id, "error_message": str(e)})

    def record(self, query: str, now: Optional[datetime] = None) -> List[SearchHistoryItem]:
        """Record a search; blank queries are ignored."""
        cleaned = (query or "").strip()
        if not cleaned:
            return self.items()

        now_ms = to_millis(now or datetime.now(timezone.utc))
        history = self.items()
        existing = next((i for i in history if i.query.lower() == cleaned.lower()), None)
        if existing is not None:
            existing.timestamp = now_ms
            existing.count += 1
        else:
            history.append(SearchHistoryItem(query=cleaned, timestamp=now_ms, count=1))

        history.sort(key=lambda i: i.timestamp, reverse=True)
        history = history[:MAX_HISTORY_ITEMS]
        self._save(history)
        return history

    def recent(self) -> List[SearchHistoryItem]:
        return self.items()[:SHORTLIST]

    def popular(self) -> List[SearchHistoryItem]:
        return sorted(self.items(), key=lambda i: -i.count)[:SHORTLIST]

    def delete(self, query: str) -> List[SearchHistoryItem]:
        target = (query or "").strip().lower()
        history = [i for i in self.items() if i.query.lower() != target]
        self._save(history)
        return history

    def clear(self) -> None:
        self._save([])
