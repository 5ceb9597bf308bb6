"""
promptlib/models/prompt.py

Prompt catalog models.

A Prompt is a reusable instruction template. Curated prompts come from the
admin CMS; custom prompts are authored by end users and share the same shape.
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

PlanType = Literal["free", "standard", "premium"]


class Prompt(BaseModel):
    """A catalog or custom prompt as seen by the application."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str
    category: str
    use_case: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    usage: Optional[str] = None
    example: Optional[str] = None
    is_premium: bool = False
    plan_type: Optional[PlanType] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            # None-valued collections come from legacy rows
            if data.get("use_case") is None:
                data["use_case"] = []
            if data.get("tags") is None:
                data["tags"] = []
            if not data.get("plan_type"):
                data["plan_type"] = "premium" if data.get("is_premium") else "free"
        return data


class PromptInput(BaseModel):
    """Fields accepted when creating or replacing a prompt."""
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    category: str = Field(min_length=1)
    use_case: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    usage: Optional[str] = None
    example: Optional[str] = None
    is_premium: bool = False
    plan_type: Optional[PlanType] = None


class PromptUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    use_case: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    usage: Optional[str] = None
    example: Optional[str] = None
    is_premium: Optional[bool] = None
    plan_type: Optional[PlanType] = None


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str


class TagCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    count: int = Field(ge=0)


class CustomPromptInput(BaseModel):
    """A user-authored prompt. `id` is only honored when migrating local data."""
    id: Optional[str] = None
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    category: str = Field(min_length=1)
    use_case: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    usage: Optional[str] = None
    example: Optional[str] = None
    is_public: bool = False
