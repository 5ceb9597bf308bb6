"""Favorites routes."""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, require_permission
from promptlib.core.database import get_db
from promptlib.features.catalog.service import get_prompt
from promptlib.features.library import favorites as service

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


class FavoritesResponse(BaseModel):
    prompt_ids: List[str]
    limit: int | None


class MigrateFavoritesRequest(BaseModel):
    prompt_ids: List[str]


class MigrationResponse(BaseModel):
    uploaded: List[str]
    skipped: List[str]


def _response(principal: Principal, ids: List[str]) -> FavoritesResponse:
    return FavoritesResponse(prompt_ids=ids, limit=principal.permissions.max_favorites)


@router.get("", response_model=FavoritesResponse)
def list_favorites(
    principal: Principal = Depends(require_permission("can_save_favorites")),
    db: Session = Depends(get_db),
):
    return _response(principal, service.list_favorites(db, principal.user_id))


@router.put("/{prompt_id}", response_model=FavoritesResponse)
def add_favorite(
    prompt_id: str,
    principal: Principal = Depends(require_permission("can_save_favorites")),
    db: Session = Depends(get_db),
):
    get_prompt(db, prompt_id)
    ids = service.add_favorite(db, principal.user_id, prompt_id, limit=principal.permissions.max_favorites)
    return _response(principal, ids)


@router.delete("/{prompt_id}", response_model=FavoritesResponse)
def remove_favorite(
    prompt_id: str,
    principal: Principal = Depends(require_permission("can_save_favorites")),
    db: Session = Depends(get_db),
):
    return _response(principal, service.remove_favorite(db, principal.user_id, prompt_id))


@router.post("/migrate", response_model=MigrationResponse)
def migrate_favorites(
    body: MigrateFavoritesRequest,
    principal: Principal = Depends(require_permission("can_save_favorites")),
    db: Session = Depends(get_db),
):
    result = service.migrate_favorites(
        db, principal.user_id, body.prompt_ids, limit=principal.permissions.max_favorites
    )
    return MigrationResponse(uploaded=result.uploaded, skipped=result.skipped)
