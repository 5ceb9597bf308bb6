"""Personal usage statistics and recommendations."""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, require_permission, require_principal
from promptlib.core.database import get_db
from promptlib.features.catalog.filters import View, select_view
from promptlib.features.catalog.service import list_prompts
from promptlib.features.library.favorites import list_favorites
from promptlib.features.recommendations.service import DEFAULT_COUNT, recommend
from promptlib.features.usage.service import global_popularity, tracker_for
from promptlib.models.recommendation import Recommendation
from promptlib.models.usage import DailyCopies, PromptStats

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("/stats", response_model=PromptStats)
def usage_stats(
    principal: Principal = Depends(require_permission("can_view_statistics")),
    db: Session = Depends(get_db),
):
    return tracker_for(db, principal.user_id).compute_stats()


@router.get("/daily", response_model=List[DailyCopies])
def usage_daily(
    days: int = Query(default=30, ge=1, le=90),
    principal: Principal = Depends(require_permission("can_view_statistics")),
    db: Session = Depends(get_db),
):
    return tracker_for(db, principal.user_id).daily_stats(days)


@router.get("/recommendations", response_model=List[Recommendation])
def recommendations(
    count: int = Query(default=DEFAULT_COUNT, ge=1, le=50),
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    catalog = list_prompts(db)
    stats = tracker_for(db, principal.user_id).compute_stats()
    return recommend(
        catalog,
        stats,
        list_favorites(db, principal.user_id),
        count,
        popularity=global_popularity(db),
        candidates=select_view(View.HOME, catalog=catalog, permissions=principal.permissions),
    )
