"""
Row <-> model translation.

Storage rows and imported documents use snake_case (and, for documents
exported by the browser client, camelCase). This is the only place that knows
about either; everything past here works with the models.
"""

from typing import Any, Dict, Mapping, Optional

from promptlib.models.article import Article
from promptlib.models.folder import FavoriteFolder
from promptlib.models.prompt import Prompt

_CAMEL_TO_SNAKE = {
    "useCase": "use_case",
    "isPremium": "is_premium",
    "planType": "plan_type",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "isPublished": "is_published",
    "publishedAt": "published_at",
    "thumbnailUrl": "thumbnail_url",
    "promptIds": "prompt_ids",
}

PLAN_TYPES = ("free", "standard", "premium")


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        out[_CAMEL_TO_SNAKE.get(key, key)] = value
    return out


def normalize_plan_type(plan_type: Optional[str], is_premium: Optional[bool]) -> str:
    """Explicit plan_type wins; otherwise derive it from the legacy flag."""
    if plan_type in PLAN_TYPES:
        return plan_type
    return "premium" if is_premium else "free"


def prompt_from_row(row: Any) -> Prompt:
    """Build a Prompt from a `prompts` or `custom_prompts` row (or any mapping)."""
    data = _normalize_keys(row._mapping if hasattr(row, "_mapping") else row)
    return Prompt(
        id=str(data["id"]),
        title=data["title"],
        content=data["content"],
        category=data.get("category") or "other",
        use_case=list(data.get("use_case") or []),
        tags=list(data.get("tags") or []),
        usage=data.get("usage"),
        example=data.get("example"),
        is_premium=bool(data.get("is_premium") or False),
        plan_type=normalize_plan_type(data.get("plan_type"), data.get("is_premium")),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


def article_from_row(row: Any) -> Article:
    data = _normalize_keys(row._mapping if hasattr(row, "_mapping") else row)
    return Article(
        id=str(data["id"]),
        title=data["title"],
        content=data["content"],
        excerpt=data.get("excerpt"),
        category=data.get("category") or "news",
        tags=list(data.get("tags") or []),
        author=data.get("author"),
        thumbnail_url=data.get("thumbnail_url"),
        is_published=bool(data.get("is_published") or False),
        published_at=data.get("published_at"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


def folder_from_row(row: Any) -> FavoriteFolder:
    data = _normalize_keys(row._mapping if hasattr(row, "_mapping") else row)
    return FavoriteFolder(
        id=str(data["id"]),
        name=data["name"],
        prompt_ids=list(data.get("prompt_ids") or []),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )
