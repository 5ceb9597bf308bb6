"""Per-user search history."""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, require_principal
from promptlib.core.database import get_db
from promptlib.features.search.service import SearchHistory
from promptlib.features.usage.stores import SqlBlobStore
from promptlib.models.usage import SearchHistoryItem

router = APIRouter(prefix="/api/search-history", tags=["search"])


class SearchRecordRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)


class SearchHistoryResponse(BaseModel):
    history: List[SearchHistoryItem]
    recent: List[SearchHistoryItem]
    popular: List[SearchHistoryItem]


def _history(db: Session, principal: Principal) -> SearchHistory:
    return SearchHistory(SqlBlobStore(db, principal.user_id), user_id=principal.user_id)


def _response(history: SearchHistory) -> SearchHistoryResponse:
    return SearchHistoryResponse(history=history.items(), recent=history.recent(), popular=history.popular())


@router.get("", response_model=SearchHistoryResponse)
def get_search_history(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return _response(_history(db, principal))


@router.post("", response_model=SearchHistoryResponse)
def record_search(body: SearchRecordRequest, principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    history = _history(db, principal)
    history.record(body.query)
    return _response(history)


@router.delete("", response_model=SearchHistoryResponse)
def delete_search(query: str = "", principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    """Delete one query, or clear everything when `query` is empty."""
    history = _history(db, principal)
    if query:
        history.delete(query)
    else:
        history.clear()
    return _response(history)
