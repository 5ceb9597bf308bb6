"""
Catalog persistence: curated prompts and editorial articles.

Reads return models in display order (newest first). Writes commit on the
passed session.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4
import logging

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from promptlib.core.database import articles, prompts
from promptlib.core.errors import NotFoundError, ValidationError
from promptlib.features.catalog.mapping import article_from_row, normalize_plan_type, prompt_from_row
from promptlib.models.article import Article, ArticleInput, ArticleUpdate
from promptlib.models.prompt import Prompt, PromptInput, PromptUpdate

logger = logging.getLogger("promptlib")


def list_prompts(session: Session) -> List[Prompt]:
    rows = session.execute(
        select(prompts).order_by(prompts.c.created_at.desc(), prompts.c.id)
    ).fetchall()
    return [prompt_from_row(r) for r in rows]


def get_prompt(session: Session, prompt_id: str) -> Prompt:
    row = session.execute(select(prompts).where(prompts.c.id == prompt_id)).first()
    if not row:
        raise NotFoundError(f"Prompt {prompt_id} not found")
    return prompt_from_row(row)


def create_prompt(session: Session, data: PromptInput, *, prompt_id: Optional[str] = None, now: Optional[datetime] = None) -> Prompt:
    ts = now or datetime.now(timezone.utc)
    new_id = prompt_id or str(uuid4())
    values = data.model_dump()
    values["plan_type"] = normalize_plan_type(values.get("plan_type"), values.get("is_premium"))
    session.execute(
        insert(prompts).values(id=new_id, created_at=ts, updated_at=ts, **values)
    )
    session.commit()
    logger.info("catalog.prompt_created", extra={"prompt_id": new_id})
    return get_prompt(session, new_id)


def update_prompt(session: Session, prompt_id: str, changes: PromptUpdate) -> Prompt:
    current = get_prompt(session, prompt_id)
    values = changes.model_dump(exclude_unset=True)
    for required in ("title", "content", "category"):
        if required in values and not values[required]:
            raise ValidationError(f"{required} must not be empty")
    if "is_premium" in values or "plan_type" in values:
        values["plan_type"] = normalize_plan_type(
            values.get("plan_type"), values.get("is_premium", current.is_premium)
        )
    if values:
        values["updated_at"] = datetime.now(timezone.utc)
        session.execute(update(prompts).where(prompts.c.id == prompt_id).values(**values))
        session.commit()
    return get_prompt(session, prompt_id)


def delete_prompt(session: Session, prompt_id: str) -> None:
    """Delete a catalog prompt. Folder and favorite references are left as-is."""
    result = session.execute(delete(prompts).where(prompts.c.id == prompt_id))
    if result.rowcount == 0:
        raise NotFoundError(f"Prompt {prompt_id} not found")
    session.commit()
    logger.info("catalog.prompt_deleted", extra={"prompt_id": prompt_id})


def list_articles(session: Session, *, published_only: bool = True) -> List[Article]:
    stmt = select(articles)
    if published_only:
        stmt = stmt.where(articles.c.is_published.is_(True)).order_by(
            articles.c.published_at.desc(), articles.c.created_at.desc()
        )
    else:
        stmt = stmt.order_by(articles.c.created_at.desc())
    return [article_from_row(r) for r in session.execute(stmt).fetchall()]


def get_article(session: Session, article_id: str, *, published_only: bool = True) -> Article:
    row = session.execute(select(articles).where(articles.c.id == article_id)).first()
    if not row or (published_only and not row.is_published):
        raise NotFoundError(f"Article {article_id} not found")
    return article_from_row(row)


def create_article(session: Session, data: ArticleInput, *, now: Optional[datetime] = None) -> Article:
    ts = now or datetime.now(timezone.utc)
    new_id = str(uuid4())
    values = data.model_dump()
    if values.get("is_published") and not values.get("published_at"):
        values["published_at"] = ts
    session.execute(insert(articles).values(id=new_id, created_at=ts, updated_at=ts, **values))
    session.commit()
    return get_article(session, new_id, published_only=False)


def update_article(session: Session, article_id: str, changes: ArticleUpdate) -> Article:
    current = get_article(session, article_id, published_only=False)
    values = changes.model_dump(exclude_unset=True)
    now = datetime.now(timezone.utc)
    # First publication stamps published_at
    if values.get("is_published") and not current.is_published and not values.get("published_at"):
        values["published_at"] = now
    if values:
        values["updated_at"] = now
        session.execute(update(articles).where(articles.c.id == article_id).values(**values))
        session.commit()
    return get_article(session, article_id, published_only=False)


def delete_article(session: Session, article_id: str) -> None:
    result = session.execute(delete(articles).where(articles.c.id == article_id))
    if result.rowcount == 0:
        raise NotFoundError(f"Article {article_id} not found")
    session.commit()
