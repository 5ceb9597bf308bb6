from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

ArticleCategory = Literal["news", "tips"]


class Article(BaseModel):
    """Editorial content; independent of prompts."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str
    excerpt: Optional[str] = None
    category: ArticleCategory
    tags: List[str] = Field(default_factory=list)
    author: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_published: bool = False
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ArticleInput(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = None
    category: ArticleCategory = "news"
    tags: List[str] = Field(default_factory=list)
    author: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_published: bool = False
    published_at: Optional[datetime] = None


class ArticleUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    category: Optional[ArticleCategory] = None
    tags: Optional[List[str]] = None
    author: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_published: Optional[bool] = None
    published_at: Optional[datetime] = None
