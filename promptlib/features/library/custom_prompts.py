"""User-authored prompts."""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.orm import Session

from promptlib.core.database import custom_prompts
from promptlib.core.errors import NotFoundError, ValidationError
from promptlib.features.catalog.mapping import prompt_from_row
from promptlib.features.entitlements.service import ensure_within_limit
from promptlib.features.library.favorites import MigrationResult
from promptlib.features.library.reconcile import reconcile
from promptlib.models.prompt import CustomPromptInput, Prompt, PromptUpdate


def _owned(user_id: str, prompt_id: str):
    return (custom_prompts.c.user_id == user_id) & (custom_prompts.c.id == prompt_id)


def list_custom_prompts(session: Session, user_id: str) -> List[Prompt]:
    """Newest first, like the catalog."""
    rows = session.execute(
        select(custom_prompts)
        .where(custom_prompts.c.user_id == user_id)
        .order_by(custom_prompts.c.created_at.desc(), custom_prompts.c.id)
    ).fetchall()
    return [prompt_from_row(r) for r in rows]


def count_custom_prompts(session: Session, user_id: str) -> int:
    return int(
        session.execute(
            select(func.count()).select_from(custom_prompts).where(custom_prompts.c.user_id == user_id)
        ).scalar() or 0
    )


def get_custom_prompt(session: Session, user_id: str, prompt_id: str) -> Prompt:
    row = session.execute(select(custom_prompts).where(_owned(user_id, prompt_id))).first()
    if not row:
        raise NotFoundError(f"Custom prompt {prompt_id} not found")
    return prompt_from_row(row)


def _insert(session: Session, user_id: str, data: CustomPromptInput, now: datetime) -> str:
    prompt_id = data.id or str(uuid4())
    values = data.model_dump(exclude={"id"})
    session.execute(
        insert(custom_prompts).values(id=prompt_id, user_id=user_id, created_at=now, updated_at=now, **values)
    )
    return prompt_id


def create_custom_prompt(session: Session, user_id: str, data: CustomPromptInput, *, limit: Optional[int] = None) -> Prompt:
    """Raises QuotaExceededError when the plan's custom prompt limit is reached."""
    ensure_within_limit(limit, count_custom_prompts(session, user_id), what="custom prompts")
    if data.id and session.execute(select(custom_prompts.c.id).where(custom_prompts.c.id == data.id)).first():
        data = data.model_copy(update={"id": None})
    prompt_id = _insert(session, user_id, data, datetime.now(timezone.utc))
    session.commit()
    return get_custom_prompt(session, user_id, prompt_id)


def update_custom_prompt(session: Session, user_id: str, prompt_id: str, changes: PromptUpdate) -> Prompt:
    get_custom_prompt(session, user_id, prompt_id)
    values = changes.model_dump(exclude_unset=True, exclude={"is_premium", "plan_type"})
    for required in ("title", "content", "category"):
        if required in values and not values[required]:
            raise ValidationError(f"{required} must not be empty")
    if values:
        values["updated_at"] = datetime.now(timezone.utc)
        session.execute(update(custom_prompts).where(_owned(user_id, prompt_id)).values(**values))
        session.commit()
    return get_custom_prompt(session, user_id, prompt_id)


def delete_custom_prompt(session: Session, user_id: str, prompt_id: str) -> None:
    result = session.execute(delete(custom_prompts).where(_owned(user_id, prompt_id)))
    if result.rowcount == 0:
        raise NotFoundError(f"Custom prompt {prompt_id} not found")
    session.commit()


def migrate_custom_prompts(
    session: Session, user_id: str, local: List[CustomPromptInput], *, limit: Optional[int] = None
) -> MigrationResult:
    """
    Upload locally authored prompts whose id is unknown remotely.

    Prompts past the plan limit are skipped. Ids taken by another user's
    prompt get a fresh id.
    """
    remote = list_custom_prompts(session, user_id)
    with_ids = [p if p.id else p.model_copy(update={"id": str(uuid4())}) for p in local]
    to_upload, _ = reconcile(with_ids, remote)

    result = MigrationResult()
    room = None if limit is None else max(limit - len(remote), 0)
    now = datetime.now(timezone.utc)
    for item in to_upload:
        if room is not None and len(result.uploaded) >= room:
            result.skipped.append(item.id)
            continue
        if session.execute(select(custom_prompts.c.id).where(custom_prompts.c.id == item.id)).first():
            item = item.model_copy(update={"id": str(uuid4())})
        result.uploaded.append(_insert(session, user_id, item, now))
    session.commit()
    return result
