"""
Admin-only routes.

Accepts an admin user (ADMIN_USER_IDS or an admin JWT claim) or the legacy
X-Admin-Key header. Handles catalog and article management, KPI statistics
and plan overrides.
"""

import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from promptlib.core.admin_auth import AdminActor, require_admin
from promptlib.core.database import get_db
from promptlib.core.errors import ConflictError, NotFoundError
from promptlib.features.billing.service import set_plan_override
from promptlib.features.catalog import service as catalog
from promptlib.features.usage.service import copy_stats, overall_stats, popular_prompts, user_activity
from promptlib.features.users.service import get_user
from promptlib.models.article import Article, ArticleInput, ArticleUpdate
from promptlib.models.prompt import Prompt, PromptInput, PromptUpdate
from promptlib.models.subscription import Subscription
from promptlib.models.usage import OverallStats, PromptUseCount, UserActivity
from promptlib.models.user import UserProfile

logger = logging.getLogger("promptlib")

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ============================================================================
# Pydantic Models
# ============================================================================

class AdminPromptInput(PromptInput):
    """Catalog prompt with an optional caller-chosen id."""
    id: Optional[str] = None


class StatsResponse(BaseModel):
    overall: OverallStats
    popular: List[PromptUseCount]


class PlanOverrideRequest(BaseModel):
    plan_type: Literal["free", "standard", "premium"]


class UserSummaryResponse(BaseModel):
    user_id: str
    email: Optional[str]
    is_admin: bool
    plan: str
    activity: UserActivity


def _existing_user(db: Session, user_id: str) -> UserProfile:
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


# ============================================================================
# Prompts
# ============================================================================

@router.get("/prompts", response_model=List[Prompt])
def list_prompts(actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    return catalog.list_prompts(db)


@router.post("/prompts", response_model=Prompt, status_code=201)
def create_prompt(body: AdminPromptInput, actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    if body.id and any(p.id == body.id for p in catalog.list_prompts(db)):
        raise ConflictError(f"Prompt {body.id} already exists")
    prompt = catalog.create_prompt(db, PromptInput(**body.model_dump(exclude={"id"})), prompt_id=body.id)
    logger.info("admin.prompt_created", extra={"prompt_id": prompt.id, "actor_id": actor.actor_id})
    return prompt


@router.patch("/prompts/{prompt_id}", response_model=Prompt)
def update_prompt(
    prompt_id: str,
    body: PromptUpdate,
    actor: AdminActor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    prompt = catalog.update_prompt(db, prompt_id, body)
    logger.info("admin.prompt_updated", extra={"prompt_id": prompt_id, "actor_id": actor.actor_id})
    return prompt


@router.delete("/prompts/{prompt_id}", status_code=204)
def delete_prompt(prompt_id: str, actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    catalog.delete_prompt(db, prompt_id)
    logger.info("admin.prompt_deleted", extra={"prompt_id": prompt_id, "actor_id": actor.actor_id})


# ============================================================================
# Articles
# ============================================================================

@router.get("/articles", response_model=List[Article])
def list_articles(actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    return catalog.list_articles(db, published_only=False)


@router.get("/articles/{article_id}", response_model=Article)
def get_article(article_id: str, actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    return catalog.get_article(db, article_id, published_only=False)


@router.post("/articles", response_model=Article, status_code=201)
def create_article(body: ArticleInput, actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    article = catalog.create_article(db, body)
    logger.info("admin.article_created", extra={"article_id": article.id, "actor_id": actor.actor_id})
    return article


@router.patch("/articles/{article_id}", response_model=Article)
def update_article(
    article_id: str,
    body: ArticleUpdate,
    actor: AdminActor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return catalog.update_article(db, article_id, body)


@router.delete("/articles/{article_id}", status_code=204)
def delete_article(article_id: str, actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    catalog.delete_article(db, article_id)
    logger.info("admin.article_deleted", extra={"article_id": article_id, "actor_id": actor.actor_id})


# ============================================================================
# Statistics
# ============================================================================

@router.get("/stats", response_model=StatsResponse)
def stats(
    limit: int = Query(default=10, ge=1, le=100),
    actor: AdminActor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return StatsResponse(overall=overall_stats(db), popular=popular_prompts(db, limit))


@router.get("/stats/copies", response_model=List[PromptUseCount])
def copies(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    actor: AdminActor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Copies per prompt inside an optional [start, end] window."""
    return copy_stats(db, start, end)


# ============================================================================
# Users
# ============================================================================

@router.get("/users/{user_id}", response_model=UserSummaryResponse)
def user_summary(user_id: str, actor: AdminActor = Depends(require_admin), db: Session = Depends(get_db)):
    user = _existing_user(db, user_id)
    return UserSummaryResponse(
        user_id=user.user_id,
        email=user.email,
        is_admin=user.is_admin,
        plan=user.plan,
        activity=user_activity(db, user_id),
    )


@router.put("/users/{user_id}/plan", response_model=Subscription)
def override_plan(
    user_id: str,
    body: PlanOverrideRequest,
    actor: AdminActor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _existing_user(db, user_id)
    return set_plan_override(db, user_id, body.plan_type, actor_id=actor.actor_id)
