"""
promptlib/features/catalog/filters.py

Prompt filter/sort pipeline (pure).

Stages apply in a fixed order and each one only narrows the previous result:
category -> use-case -> tag set -> free text -> sort. No I/O; callers load the
catalog and context from the store first.
"""

import locale
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from promptlib.models.entitlement import UserPermissions
from promptlib.models.folder import FavoriteFolder
from promptlib.models.prompt import Prompt, TagCount

logger = logging.getLogger("promptlib")

ALL = "all"


def configure_collation(name: str = "") -> bool:
    """
    Set LC_COLLATE for the `name` sort.

    Returns False when the locale is not installed; titles then sort in
    code-point order.
    """
    try:
        locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error:
        logger.warning("catalog.collation_unavailable", extra={"locale": name or "(environment)"})
        return False
    return True


class TagMode(str, Enum):
    AND = "AND"
    OR = "OR"


class SortOrder(str, Enum):
    DEFAULT = "default"
    POPULAR = "popular"
    FAVORITE = "favorite"
    NAME = "name"


class View(str, Enum):
    HOME = "home"
    FAVORITES = "favorites"
    CUSTOM = "custom"


@dataclass(frozen=True)
class FilterCriteria:
    category: str = ALL
    use_case: str = ALL
    tags: FrozenSet[str] = frozenset()
    tag_mode: TagMode = TagMode.AND
    query: str = ""
    sort_by: SortOrder = SortOrder.DEFAULT


@dataclass(frozen=True)
class FilterContext:
    """Per-user signals needed by the sort stage."""
    usage_counts: Mapping[str, int] = field(default_factory=dict)
    favorites: FrozenSet[str] = frozenset()


def by_category(prompts: Iterable[Prompt], category: str) -> List[Prompt]:
    if not category or category == ALL:
        return list(prompts)
    return [p for p in prompts if p.category == category]


def by_use_case(prompts: Iterable[Prompt], use_case: str) -> List[Prompt]:
    if not use_case or use_case == ALL:
        return list(prompts)
    # Older records carried use-cases in tags only
    return [p for p in prompts if use_case in (p.use_case or []) or use_case in (p.tags or [])]


def by_tags(prompts: Iterable[Prompt], tags: Iterable[str], mode: TagMode = TagMode.AND) -> List[Prompt]:
    selected = [t for t in tags if t]
    if not selected:
        return list(prompts)
    if TagMode(mode) == TagMode.AND:
        return [p for p in prompts if all(t in (p.tags or []) for t in selected)]
    return [p for p in prompts if any(t in (p.tags or []) for t in selected)]


def by_query(prompts: Iterable[Prompt], query: str) -> List[Prompt]:
    if not query:
        return list(prompts)
    q = query.lower()

    def matches(p: Prompt) -> bool:
        if q in p.title.lower() or q in p.content.lower():
            return True
        if any(q in tag.lower() for tag in (p.tags or [])):
            return True
        return any(q in uc.lower() for uc in (p.use_case or []))

    return [p for p in prompts if matches(p)]


def sort_prompts(prompts: Sequence[Prompt], sort_by: SortOrder, context: Optional[FilterContext] = None) -> List[Prompt]:
    """
    Order prompts for display.

    All orderings are stable: `default` keeps input order (newest first
    upstream), `popular` sorts by usage count desc, `favorite` moves favorites
    to the front, `name` sorts titles with the process locale's collation.
    """
    ctx = context or FilterContext()
    order = SortOrder(sort_by)
    if order == SortOrder.POPULAR:
        return sorted(prompts, key=lambda p: -ctx.usage_counts.get(p.id, 0))
    if order == SortOrder.FAVORITE:
        return sorted(prompts, key=lambda p: 0 if p.id in ctx.favorites else 1)
    if order == SortOrder.NAME:
        return sorted(prompts, key=lambda p: locale.strxfrm(p.title))
    return list(prompts)


def filter_prompts(
    all_prompts: Iterable[Prompt],
    criteria: Optional[FilterCriteria] = None,
    context: Optional[FilterContext] = None,
) -> List[Prompt]:
    """
    Run the full pipeline.

    Args:
        all_prompts: candidate prompts in display order
        criteria: filter and sort selection (defaults pass everything through)
        context: usage counts and favorites for the sort stage

    Returns:
        Narrowed, ordered list. Criteria matching nothing yield an empty list.
    """
    c = criteria or FilterCriteria()
    result = by_category(all_prompts, c.category)
    result = by_use_case(result, c.use_case)
    result = by_tags(result, c.tags, c.tag_mode)
    result = by_query(result, c.query)
    return sort_prompts(result, c.sort_by, context)


def tag_cloud(prompts: Iterable[Prompt], category: str = ALL, use_case: str = ALL) -> List[TagCount]:
    """Tag counts over the category+use-case subset, most frequent first."""
    subset = by_use_case(by_category(prompts, category), use_case)
    counts: Counter = Counter()
    for p in subset:
        counts.update(p.tags or [])
    # Counter.most_common keeps first-seen order among equal counts
    return [TagCount(tag=tag, count=n) for tag, n in counts.most_common()]


def usage_counts_from_stats(most_used: Iterable) -> Dict[str, int]:
    """Map prompt id -> count from a `most_used_prompts` list."""
    return {item.prompt_id: item.count for item in most_used}


def select_view(
    view: View,
    *,
    catalog: Sequence[Prompt],
    permissions: UserPermissions,
    favorites: Iterable[str] = (),
    custom_prompts: Sequence[Prompt] = (),
    folder: Optional[FavoriteFolder] = None,
) -> List[Prompt]:
    """
    Pick the base listing for a view before the filter pipeline runs.

    - home: the curated catalog, truncated to `max_visible_prompts`
    - favorites: favorited catalog prompts (or one folder's), in catalog order
    - custom: the user's own prompts

    Ids that no longer resolve to a prompt are dropped. Truncation only
    applies to the home listing.
    """
    v = View(view)
    if v == View.CUSTOM:
        return list(custom_prompts)

    if v == View.FAVORITES:
        wanted = set(folder.prompt_ids) if folder is not None else set(favorites)
        return [p for p in catalog if p.id in wanted]

    listing = list(catalog)
    if permissions.max_visible_prompts is not None:
        listing = listing[: permissions.max_visible_prompts]
    return listing
