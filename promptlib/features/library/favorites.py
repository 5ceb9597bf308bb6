"""Favorite prompt ids per user."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promptlib.core.database import user_favorites
from promptlib.features.entitlements.service import ensure_within_limit
from promptlib.features.library.reconcile import reconcile


@dataclass
class MigrationResult:
    uploaded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def list_favorites(session: Session, user_id: str) -> List[str]:
    rows = session.execute(
        select(user_favorites.c.prompt_id)
        .where(user_favorites.c.user_id == user_id)
        .order_by(user_favorites.c.created_at, user_favorites.c.id)
    ).fetchall()
    return [r.prompt_id for r in rows]


def add_favorite(session: Session, user_id: str, prompt_id: str, *, limit: Optional[int] = None) -> List[str]:
    """Favorite a prompt (idempotent). Raises QuotaExceededError past `limit`."""
    current = list_favorites(session, user_id)
    if prompt_id in current:
        return current
    ensure_within_limit(limit, len(current), what="favorites")
    try:
        session.execute(
            insert(user_favorites).values(user_id=user_id, prompt_id=prompt_id, created_at=datetime.now(timezone.utc))
        )
        session.commit()
    except IntegrityError:
        session.rollback()
    return list_favorites(session, user_id)


def remove_favorite(session: Session, user_id: str, prompt_id: str) -> List[str]:
    session.execute(
        delete(user_favorites).where(
            (user_favorites.c.user_id == user_id) & (user_favorites.c.prompt_id == prompt_id)
        )
    )
    session.commit()
    return list_favorites(session, user_id)


def migrate_favorites(session: Session, user_id: str, local_ids: List[str], *, limit: Optional[int] = None) -> MigrationResult:
    """
    Upload locally stored favorites missing remotely.

    Ids that would exceed `limit` are skipped rather than failing the merge.
    """
    remote = list_favorites(session, user_id)
    to_upload, _ = reconcile(local_ids, remote, key=lambda pid: pid)

    result = MigrationResult()
    room = None if limit is None else max(limit - len(remote), 0)
    now = datetime.now(timezone.utc)
    for prompt_id in to_upload:
        if room is not None and len(result.uploaded) >= room:
            result.skipped.append(prompt_id)
            continue
        session.execute(insert(user_favorites).values(user_id=user_id, prompt_id=prompt_id, created_at=now))
        result.uploaded.append(prompt_id)
    session.commit()
    return result
