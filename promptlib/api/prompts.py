"""
Prompt catalog routes.

- GET  /api/prompts: view selection + filter/sort pipeline
- GET  /api/prompts/tags: tag cloud for the active coarse filters
- GET  /api/prompts/categories: fixed taxonomies
- GET  /api/prompts/{id}: one prompt with its placeholder variables
- POST /api/prompts/{id}/render: fill placeholder variables
- POST /api/prompts/{id}/copy: record a copy (history + copy log)
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, get_principal, require_permission
from promptlib.core.database import get_db
from promptlib.core.errors import NotFoundError
from promptlib.features.catalog import service as catalog
from promptlib.features.catalog.filters import (
    FilterContext,
    FilterCriteria,
    SortOrder,
    TagMode,
    View,
    filter_prompts,
    select_view,
    tag_cloud,
    usage_counts_from_stats,
)
from promptlib.features.catalog.taxonomy import CATEGORIES, USE_CASES, get_category
from promptlib.features.catalog.variables import extract_variables, fill_variables
from promptlib.features.entitlements.service import ensure_permission
from promptlib.features.library.custom_prompts import get_custom_prompt, list_custom_prompts
from promptlib.features.library.favorites import list_favorites
from promptlib.features.library.folders import get_folder
from promptlib.features.usage.service import record_copy, tracker_for
from promptlib.models.prompt import Category, Prompt, TagCount
from promptlib.models.usage import PromptStats

router = APIRouter(prefix="/api/prompts", tags=["prompts"])


class PromptListResponse(BaseModel):
    view: str
    count: int
    prompts: List[Prompt]


class PromptDetailResponse(BaseModel):
    prompt: Prompt
    category: Category
    variables: List[str]


class RenderRequest(BaseModel):
    values: Dict[str, str] = Field(default_factory=dict)


class RenderResponse(BaseModel):
    content: str
    variables: List[str]
    missing: List[str]


class CopyResponse(BaseModel):
    copied: bool
    prompt_id: str
    stats: PromptStats


class TaxonomyResponse(BaseModel):
    categories: List[Category]
    use_cases: List[str]


def _find_prompt(db: Session, principal: Principal, prompt_id: str) -> Prompt:
    """Catalog prompt, or one of the caller's own custom prompts."""
    try:
        return catalog.get_prompt(db, prompt_id)
    except NotFoundError:
        if principal.user is None:
            raise
        return get_custom_prompt(db, principal.user_id, prompt_id)


@router.get("", response_model=PromptListResponse)
def list_prompts(
    view: View = View.HOME,
    folder_id: Optional[str] = None,
    category: str = "all",
    use_case: str = "all",
    tags: List[str] = Query(default=[]),
    tag_mode: TagMode = TagMode.AND,
    q: str = "",
    sort_by: SortOrder = SortOrder.DEFAULT,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    all_prompts = catalog.list_prompts(db)
    favorites: List[str] = []
    custom: List[Prompt] = []
    usage_counts: Dict[str, int] = {}
    folder = None

    if principal.user is not None:
        user_id = principal.user_id
        favorites = list_favorites(db, user_id)
        if view == View.CUSTOM:
            ensure_permission(principal.permissions, "can_create_custom_prompts")
            custom = list_custom_prompts(db, user_id)
        if folder_id:
            ensure_permission(principal.permissions, "can_use_folders")
            folder = get_folder(db, user_id, folder_id)
            view = View.FAVORITES
        if sort_by == SortOrder.POPULAR:
            usage_counts = usage_counts_from_stats(tracker_for(db, user_id).compute_stats().most_used_prompts)

    base = select_view(
        view,
        catalog=all_prompts,
        permissions=principal.permissions,
        favorites=favorites,
        custom_prompts=custom,
        folder=folder,
    )
    criteria = FilterCriteria(
        category=category,
        use_case=use_case,
        tags=frozenset(tags),
        tag_mode=tag_mode,
        query=q.strip(),
        sort_by=sort_by,
    )
    result = filter_prompts(base, criteria, FilterContext(usage_counts=usage_counts, favorites=frozenset(favorites)))
    return PromptListResponse(view=view.value, count=len(result), prompts=result)


@router.get("/tags", response_model=List[TagCount])
def list_tags(category: str = "all", use_case: str = "all", db: Session = Depends(get_db)):
    return tag_cloud(catalog.list_prompts(db), category, use_case)


@router.get("/categories", response_model=TaxonomyResponse)
def list_categories():
    return TaxonomyResponse(categories=CATEGORIES, use_cases=list(USE_CASES))


@router.get("/{prompt_id}", response_model=PromptDetailResponse)
def get_prompt(prompt_id: str, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    prompt = _find_prompt(db, principal, prompt_id)
    return PromptDetailResponse(
        prompt=prompt,
        category=get_category(prompt.category),
        variables=extract_variables(prompt.content),
    )


@router.post("/{prompt_id}/render", response_model=RenderResponse)
def render_prompt(
    prompt_id: str,
    body: RenderRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    prompt = _find_prompt(db, principal, prompt_id)
    variables = extract_variables(prompt.content)
    return RenderResponse(
        content=fill_variables(prompt.content, body.values),
        variables=variables,
        missing=[v for v in variables if v not in body.values],
    )


@router.post("/{prompt_id}/copy", response_model=CopyResponse)
def copy_prompt(
    prompt_id: str,
    principal: Principal = Depends(require_permission("can_copy_prompts")),
    db: Session = Depends(get_db),
):
    prompt = _find_prompt(db, principal, prompt_id)
    record_copy(db, principal.user_id, prompt.id)
    stats = tracker_for(db, principal.user_id).compute_stats()
    return CopyResponse(copied=True, prompt_id=prompt.id, stats=stats)
