"""Recommendation scorer tests."""
from promptlib.features.recommendations.service import (
    REASON_CATEGORY,
    REASON_NEW,
    REASON_POPULAR,
    REASON_USE_CASE,
    recommend,
)
from promptlib.models.prompt import Prompt
from promptlib.models.usage import PromptStats, PromptUseCount


def _prompt(pid, category="writing", tags=(), use_case=()):
    return Prompt(id=pid, title=pid, content="c", category=category, tags=list(tags), use_case=list(use_case))


CATALOG = [
    _prompt("p1", "writing", ["blog", "seo"], ["marketing"]),
    _prompt("p2", "writing", ["blog"], []),
    _prompt("p3", "sales", ["email"], ["outreach"]),
    _prompt("p4", "marketing", ["seo"], ["marketing"]),
    _prompt("p5", "legal", [], []),
    _prompt("p6", "writing", [], []),
    _prompt("p7", "sales", ["email"], []),
]


def _stats(*pairs):
    return PromptStats(most_used_prompts=[PromptUseCount(prompt_id=pid, count=n) for pid, n in pairs])


def test_cold_start_returns_first_prompts_as_new():
    result = recommend(CATALOG, None, [], count=3)
    assert [r.prompt.id for r in result] == ["p1", "p2", "p3"]
    assert all(r.reasons == [REASON_NEW] for r in result)

    assert len(recommend(CATALOG, PromptStats(), [])) == 6


def test_used_and_favorited_prompts_are_never_recommended():
    result = recommend(CATALOG, _stats(("p1", 3)), ["p3"], count=10)
    ids = [r.prompt.id for r in result]
    assert "p1" not in ids
    assert "p3" not in ids


def test_zero_score_prompts_are_left_out():
    result = recommend(CATALOG, _stats(("p1", 1)), [], count=10)
    assert "p5" not in [r.prompt.id for r in result]


def test_scores_rank_category_tags_and_use_cases():
    result = recommend(CATALOG, _stats(("p1", 1)), [], count=10)
    by_id = {r.prompt.id: r.reasons for r in result}

    # p2: same category + blog tag; p4: seo tag + marketing use case
    assert [r.prompt.id for r in result][:2] == ["p2", "p4"]
    assert by_id["p2"] == [REASON_CATEGORY, "tags: blog"]
    assert by_id["p4"] == ["tags: seo", REASON_USE_CASE]
    assert by_id["p6"] == [REASON_CATEGORY]


def test_global_popularity_adds_reason():
    result = recommend(CATALOG, None, ["p3"], count=10, popularity={"p7": 50, "p6": 2})
    by_id = {r.prompt.id: r for r in result}

    assert by_id["p7"].reasons == [REASON_CATEGORY, "tags: email", REASON_POPULAR]
    assert REASON_POPULAR in by_id["p6"].reasons
    # Popularity is capped at 10: p7 scores 10 + 5 + 10
    assert result[0].prompt.id == "p7"


def test_count_limits_results():
    assert len(recommend(CATALOG, _stats(("p1", 1)), [], count=1)) == 1


def test_candidates_limit_suggestions_but_not_the_profile():
    visible = [p for p in CATALOG if p.id != "p2"]
    result = recommend(CATALOG, _stats(("p1", 1)), [], count=10, candidates=visible)
    ids = [r.prompt.id for r in result]

    assert "p2" not in ids
    assert ids[0] == "p4"


def test_cold_start_draws_from_candidates():
    result = recommend(CATALOG, None, [], count=2, candidates=CATALOG[3:])
    assert [r.prompt.id for r in result] == [p.id for p in CATALOG[3:5]]
