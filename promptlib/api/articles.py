"""Published articles (news and tips)."""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, require_permission
from promptlib.core.database import get_db
from promptlib.features.catalog import service
from promptlib.models.article import Article, ArticleCategory

router = APIRouter(prefix="/api/articles", tags=["articles"])

articles_gate = require_permission("can_view_articles")


@router.get("", response_model=List[Article])
def list_articles(
    category: Optional[ArticleCategory] = None,
    principal: Principal = Depends(articles_gate),
    db: Session = Depends(get_db),
):
    articles = service.list_articles(db)
    if category:
        articles = [a for a in articles if a.category == category]
    return articles


@router.get("/{article_id}", response_model=Article)
def get_article(article_id: str, principal: Principal = Depends(articles_gate), db: Session = Depends(get_db)):
    return service.get_article(db, article_id)
