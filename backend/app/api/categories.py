from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.deps import SORT_PATTERN, get_current_editor_user, pagination_params
from app.models.user import User
from app.schemas.article import ArticleListResponse
from app.schemas.category import (
    CategoryCreate,
    CategoryDetailResponse,
    CategoryResponse,
    CategoryTreeNode,
    CategoryUpdate,
)
from app.schemas.pagination import PaginatedResponse, PaginationParams
from app.services.article_service import ArticleService
from app.services.category_service import CategoryService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[CategoryResponse])
async def list_categories(
    pagination: PaginationParams = Depends(pagination_params),
    include_inactive: bool = False,
    parent_only: bool = False,
    search: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db)
):
    return CategoryService.list_categories(db, pagination, include_inactive, parent_only, search)


@router.get("/tree", response_model=List[CategoryTreeNode])
async def get_category_tree(db: Session = Depends(get_db)):
    """Active categories as a nested tree"""
    return CategoryService.get_tree(db)


@router.post("", response_model=CategoryDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return CategoryService.create_category(db, data, current_user)


@router.get("/{slug}", response_model=CategoryDetailResponse)
async def get_category(slug: str, db: Session = Depends(get_db)):
    return CategoryService.get_category(db, slug)


@router.get("/{slug}/articles", response_model=ArticleListResponse)
async def get_category_articles(
    slug: str,
    pagination: PaginationParams = Depends(pagination_params),
    sort: str = Query("newest", pattern=SORT_PATTERN),
    db: Session = Depends(get_db)
):
    category = CategoryService.get_by_slug_or_404(db, slug)
    return ArticleService.list_by_category(db, category.id, pagination.page, pagination.limit, sort)


@router.put("/{category_id}", response_model=CategoryDetailResponse)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return CategoryService.update_category(db, category_id, data, current_user)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    """Delete a category that has no subcategories and no articles"""
    CategoryService.delete_category(db, category_id, current_user)
