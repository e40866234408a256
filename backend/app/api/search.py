from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.deps import pagination_params
from app.schemas.pagination import PaginationParams
from app.schemas.search import SearchResponse, SearchType
from app.services.search_service import SearchService

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query(..., min_length=1, max_length=200, description="Search text"),
    type: SearchType = SearchType.ALL,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    """Search across articles, categories and tags"""
    return SearchService.search(db, q, type, pagination.page, pagination.limit)
