"""
promptlib/features/recommendations/service.py

Recommendation scorer (pure, deterministic).

Scores catalog prompts the user has neither used nor favorited against the
profile built from the prompts they have. Additive heuristic:

    category   +10 per profile prompt in the same category   (cap 30)
    tags       +5 per profile occurrence of each shared tag   (cap 40)
    use-case   +5 per profile occurrence of each shared case  (cap 20)
    popularity +copy count                                    (cap 10)

Without any profile the first `count` prompts are returned as "new".
"""

from collections import Counter
from typing import Iterable, List, Mapping, Optional, Sequence

from promptlib.models.prompt import Prompt
from promptlib.models.recommendation import Recommendation
from promptlib.models.usage import PromptStats

DEFAULT_COUNT = 6

REASON_NEW = "new"
REASON_CATEGORY = "same category"
REASON_USE_CASE = "same use-case"
REASON_POPULAR = "popular"

CATEGORY_WEIGHT, CATEGORY_CAP = 10, 30
TAG_WEIGHT, TAG_CAP = 5, 40
USE_CASE_WEIGHT, USE_CASE_CAP = 5, 20
POPULARITY_CAP = 10


def recommend(
    all_prompts: Sequence[Prompt],
    usage_stats: Optional[PromptStats],
    favorites: Iterable[str],
    count: int = DEFAULT_COUNT,
    popularity: Optional[Mapping[str, int]] = None,
    candidates: Optional[Sequence[Prompt]] = None,
) -> List[Recommendation]:
    """
    Suggest up to `count` prompts.

    Args:
        all_prompts: catalog in display order
        usage_stats: the user's history stats (may be None or empty)
        favorites: favorited prompt ids
        count: maximum number of results
        popularity: optional global copy counts; defaults to the user's own
            most-used counts
        candidates: prompts that may be suggested; defaults to `all_prompts`.
            The profile is always built from `all_prompts`.

    Returns:
        Recommendations sorted by score descending; ties keep catalog order.
    """
    stats = usage_stats or PromptStats()
    used_ids = {item.prompt_id for item in stats.most_used_prompts}
    favorite_ids = set(favorites)

    profile = [p for p in all_prompts if p.id in used_ids]
    profile += [p for p in all_prompts if p.id in favorite_ids and p.id not in used_ids]

    pool = all_prompts if candidates is None else candidates
    if not profile:
        return [Recommendation(prompt=p, reasons=[REASON_NEW]) for p in pool[:count]]

    category_count = Counter(p.category for p in profile)
    tag_count: Counter = Counter()
    use_case_count: Counter = Counter()
    for p in profile:
        tag_count.update(p.tags or [])
        use_case_count.update(p.use_case or [])

    if popularity is None:
        popularity = {item.prompt_id: item.count for item in stats.most_used_prompts}

    scored = []
    for prompt in pool:
        if prompt.id in used_ids or prompt.id in favorite_ids:
            continue

        score = 0
        reasons: List[str] = []

        if category_count[prompt.category] > 0:
            score += min(category_count[prompt.category] * CATEGORY_WEIGHT, CATEGORY_CAP)
            reasons.append(REASON_CATEGORY)

        matched_tags = [t for t in (prompt.tags or []) if tag_count[t] > 0]
        tag_score = sum(tag_count[t] * TAG_WEIGHT for t in matched_tags)
        if tag_score > 0:
            score += min(tag_score, TAG_CAP)
            reasons.append("tags: " + ", ".join(matched_tags[:2]))

        use_case_score = sum(use_case_count[uc] * USE_CASE_WEIGHT for uc in (prompt.use_case or []))
        if use_case_score > 0:
            score += min(use_case_score, USE_CASE_CAP)
            reasons.append(REASON_USE_CASE)

        popular = popularity.get(prompt.id, 0)
        if popular > 0:
            score += min(popular, POPULARITY_CAP)
            reasons.append(REASON_POPULAR)

        if score > 0:
            scored.append((score, prompt, reasons))

    scored.sort(key=lambda entry: -entry[0])
    return [Recommendation(prompt=p, reasons=r) for _, p, r in scored[:count]]
