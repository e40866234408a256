from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.deps import SORT_PATTERN, get_current_editor_user, pagination_params
from app.models.user import User
from app.schemas.article import ArticleListResponse
from app.schemas.pagination import PaginatedResponse, PaginationParams
from app.schemas.tag import TagCreate, TagResponse, TagUpdate
from app.services.article_service import ArticleService
from app.services.tag_service import TagService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[TagResponse])
async def list_tags(
    pagination: PaginationParams = Depends(pagination_params),
    search: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db)
):
    return TagService.list_tags(db, pagination, search)


@router.get("/popular", response_model=List[TagResponse])
async def popular_tags(
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db)
):
    """Most used tags"""
    return TagService.popular_tags(db, limit)


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return TagService.create_tag(db, data, current_user)


@router.get("/{slug}", response_model=TagResponse)
async def get_tag(slug: str, db: Session = Depends(get_db)):
    return TagService.get_tag(db, slug)


@router.get("/{slug}/articles", response_model=ArticleListResponse)
async def get_tag_articles(
    slug: str,
    pagination: PaginationParams = Depends(pagination_params),
    sort: str = Query("newest", pattern=SORT_PATTERN),
    db: Session = Depends(get_db)
):
    tag = TagService.get_by_slug_or_404(db, slug)
    return ArticleService.list_by_tag(db, tag.id, pagination.page, pagination.limit, sort)


@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    data: TagUpdate,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return TagService.update_tag(db, tag_id, data, current_user)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: str,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    TagService.delete_tag(db, tag_id, current_user)
