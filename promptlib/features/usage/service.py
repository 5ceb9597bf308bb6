"""
Server-side usage: copy logging and admin KPI aggregation.

Every copy is written twice: into the user's history blob (personal stats and
recommendations) and as a `copy_logs` row (admin KPIs, global popularity).
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo
import logging

from sqlalchemy import distinct, func, insert, select
from sqlalchemy.orm import Session

from promptlib.core.config import settings
from promptlib.core.database import articles, copy_logs, custom_prompts, user_favorites
from promptlib.core.logging import log_event
from promptlib.features.usage.stores import SqlBlobStore
from promptlib.features.usage.tracker import UsageTracker
from promptlib.models.usage import OverallStats, PromptUseCount, UserActivity

logger = logging.getLogger("promptlib")


@lru_cache(maxsize=8)
def local_timezone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def tracker_for(session: Session, user_id: str) -> UsageTracker:
    return UsageTracker(
        SqlBlobStore(session, user_id),
        local_timezone(settings.LOCAL_TIMEZONE),
        user_id=user_id,
    )


def record_copy(session: Session, user_id: Optional[str], prompt_id: str, now: Optional[datetime] = None) -> None:
    """
    Log a copy of `prompt_id`.

    The copy log row is committed first; the personal history update is
    best-effort and never fails the request.
    """
    ts = now or datetime.now(timezone.utc)
    session.execute(insert(copy_logs).values(user_id=user_id, prompt_id=prompt_id, created_at=ts))
    session.commit()
    if user_id:
        tracker_for(session, user_id).record_use(prompt_id, now=ts)
    log_event("info", "usage.copy", user_id=user_id, prompt_id=prompt_id, event_type="copy")


def global_popularity(session: Session) -> Dict[str, int]:
    """Copy counts per prompt id across all users."""
    rows = session.execute(
        select(copy_logs.c.prompt_id, func.count().label("n")).group_by(copy_logs.c.prompt_id)
    ).fetchall()
    return {r.prompt_id: int(r.n) for r in rows}


def popular_prompts(session: Session, limit: int = 10) -> List[PromptUseCount]:
    counts = global_popularity(session)
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])[:limit]
    return [PromptUseCount(prompt_id=pid, count=n) for pid, n in ranked]


def copy_stats(session: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[PromptUseCount]:
    """Copies per prompt inside [start, end], most copied first."""
    stmt = select(copy_logs.c.prompt_id, func.count().label("n"))
    if start is not None:
        stmt = stmt.where(copy_logs.c.created_at >= start)
    if end is not None:
        stmt = stmt.where(copy_logs.c.created_at <= end)
    rows = session.execute(stmt.group_by(copy_logs.c.prompt_id)).fetchall()
    ranked = sorted(((r.prompt_id, int(r.n)) for r in rows), key=lambda kv: (-kv[1], kv[0]))
    return [PromptUseCount(prompt_id=pid, count=n) for pid, n in ranked]


def overall_stats(session: Session) -> OverallStats:
    def scalar(stmt) -> int:
        return int(session.execute(stmt).scalar() or 0)

    return OverallStats(
        active_users=scalar(select(func.count(distinct(user_favorites.c.user_id)))),
        total_copies=scalar(select(func.count()).select_from(copy_logs)),
        total_articles=scalar(select(func.count()).select_from(articles).where(articles.c.is_published.is_(True))),
        total_custom_prompts=scalar(select(func.count()).select_from(custom_prompts)),
    )


def user_activity(session: Session, user_id: str) -> UserActivity:
    def count(table) -> int:
        return int(
            session.execute(select(func.count()).select_from(table).where(table.c.user_id == user_id)).scalar() or 0
        )

    return UserActivity(
        favorites=count(user_favorites),
        custom_prompts=count(custom_prompts),
        copies=count(copy_logs),
    )
