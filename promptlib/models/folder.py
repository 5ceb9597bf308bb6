from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class FavoriteFolder(BaseModel):
    """
    A named, ordered group of prompt ids owned by one user.

    Duplicates in `prompt_ids` are not rejected by the store; ids whose prompt
    no longer exists are dropped when the folder's prompts are resolved.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    prompt_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FolderInput(BaseModel):
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=200)
    prompt_ids: List[str] = Field(default_factory=list)


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    prompt_ids: Optional[List[str]] = None
