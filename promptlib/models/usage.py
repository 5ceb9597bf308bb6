"""
promptlib/models/usage.py

Usage history models.

History items are serialized with camelCase keys (`promptId`) so the stored
log stays compatible with logs exported from the browser client.
"""

from typing import List
from pydantic import BaseModel, ConfigDict, Field


class UsageHistoryItem(BaseModel):
    """One day-bucket of uses of a single prompt."""
    model_config = ConfigDict(populate_by_name=True)

    prompt_id: str = Field(alias="promptId")
    timestamp: int = Field(description="Epoch milliseconds of the latest use")
    count: int = Field(ge=1)


class PromptUseCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_id: str
    count: int = Field(ge=0)


class PromptStats(BaseModel):
    """Aggregated view over the usage history."""
    model_config = ConfigDict(frozen=True)

    total_copies: int = Field(default=0, ge=0)
    today_copies: int = Field(default=0, ge=0)
    this_month_copies: int = Field(default=0, ge=0)
    most_used_prompts: List[PromptUseCount] = Field(default_factory=list)
    recent_prompts: List[str] = Field(default_factory=list)


class DailyCopies(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str = Field(description="M/D label of the local day")
    copies: int = Field(ge=0)


class SearchHistoryItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    timestamp: int
    count: int = Field(ge=1)


class OverallStats(BaseModel):
    """Admin KPI snapshot."""
    model_config = ConfigDict(frozen=True)

    active_users: int = Field(ge=0, description="Distinct users holding at least one favorite")
    total_copies: int = Field(ge=0)
    total_articles: int = Field(ge=0, description="Published articles")
    total_custom_prompts: int = Field(ge=0)


class UserActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    favorites: int = Field(ge=0)
    custom_prompts: int = Field(ge=0)
    copies: int = Field(ge=0)
