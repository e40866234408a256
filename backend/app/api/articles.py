from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.deps import (
    SORT_PATTERN,
    article_list_query,
    get_current_author_user,
    get_current_editor_user,
    get_current_user,
    get_optional_current_user,
    pagination_params,
)
from app.models.user import User
from app.schemas.article import (
    ArticleCreate,
    ArticleListQuery,
    ArticleListResponse,
    ArticleResponse,
    ArticleSummary,
    ArticleUpdate,
    StaffPickUpdate,
)
from app.schemas.engagement import (
    BookmarkStatusResponse,
    CommentCreate,
    CommentResponse,
    CommentWithReplies,
    LikeStatusResponse,
)
from app.schemas.pagination import PaginatedResponse, PaginationParams
from app.services.article_service import ArticleService
from app.services.engagement_service import EngagementService

router = APIRouter()


@router.get("", response_model=ArticleListResponse)
async def list_articles(
    query: ArticleListQuery = Depends(article_list_query),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    """List articles with filtering, search, sorting and pagination.

    Anonymous users and readers only ever see published articles; editors
    may filter on any status.
    """
    return ArticleService.list_articles(db, query, current_user)


@router.post("", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article(
    article_data: ArticleCreate,
    current_user: User = Depends(get_current_author_user),
    db: Session = Depends(get_db)
):
    return ArticleService.create_article(db, article_data, current_user)


@router.get("/feed", response_model=ArticleListResponse)
async def get_feed(
    pagination: PaginationParams = Depends(pagination_params),
    sort: str = Query("newest", pattern=SORT_PATTERN),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Articles from followed authors and categories of interest"""
    return ArticleService.get_feed(db, current_user, pagination.page, pagination.limit, sort)


@router.get("/trending", response_model=List[ArticleSummary])
async def get_trending(
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db)
):
    return ArticleService.get_trending(db, limit)


@router.get("/recent", response_model=List[ArticleSummary])
async def get_recent(
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db)
):
    return ArticleService.get_recent(db, limit)


@router.get("/staff-picks", response_model=ArticleListResponse)
async def get_staff_picks(
    pagination: PaginationParams = Depends(pagination_params),
    sort: str = Query("newest", pattern=SORT_PATTERN),
    db: Session = Depends(get_db)
):
    return ArticleService.get_staff_picks(db, pagination.page, pagination.limit, sort)


@router.get("/{slug}", response_model=ArticleResponse)
async def get_article(
    slug: str,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    """Get an article by slug; every call counts as one view"""
    return ArticleService.get_by_slug(db, slug, current_user)


@router.get("/{slug}/related", response_model=List[ArticleSummary])
async def get_related(
    slug: str,
    limit: int = Query(5, ge=1),
    db: Session = Depends(get_db)
):
    return ArticleService.get_related(db, slug, limit)


@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: str,
    article_data: ArticleUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ArticleService.update_article(db, article_id, article_data, current_user)


@router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ArticleService.delete_article(db, article_id, current_user)


@router.post("/{article_id}/publish", response_model=ArticleResponse)
async def publish_article(
    article_id: str,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return ArticleService.publish_article(db, article_id, current_user)


@router.post("/{article_id}/unpublish", response_model=ArticleResponse)
async def unpublish_article(
    article_id: str,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return ArticleService.unpublish_article(db, article_id, current_user)


@router.post("/{article_id}/archive", response_model=ArticleResponse)
async def archive_article(
    article_id: str,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return ArticleService.archive_article(db, article_id, current_user)


@router.put("/{article_id}/staff-pick", response_model=ArticleResponse)
async def set_staff_pick(
    article_id: str,
    body: StaffPickUpdate,
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    return ArticleService.set_staff_pick(db, article_id, body.is_staff_pick, current_user)


# Engagement
@router.get("/{article_id}/like", response_model=LikeStatusResponse)
async def get_like_status(
    article_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EngagementService.like_status(db, current_user, article_id)


@router.post("/{article_id}/like", response_model=LikeStatusResponse, status_code=status.HTTP_201_CREATED)
async def like_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EngagementService.like_article(db, current_user, article_id)


@router.delete("/{article_id}/like", response_model=LikeStatusResponse)
async def unlike_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EngagementService.unlike_article(db, current_user, article_id)


@router.post("/{article_id}/bookmark", response_model=BookmarkStatusResponse, status_code=status.HTTP_201_CREATED)
async def bookmark_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EngagementService.bookmark_article(db, current_user, article_id)


@router.delete("/{article_id}/bookmark", response_model=BookmarkStatusResponse)
async def remove_bookmark(
    article_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EngagementService.remove_bookmark(db, current_user, article_id)


@router.get("/{article_id}/comments", response_model=PaginatedResponse[CommentWithReplies])
async def list_comments(
    article_id: str,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    return EngagementService.list_comments(db, article_id, pagination)


@router.post("/{article_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    article_id: str,
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EngagementService.create_comment(db, current_user, article_id, comment_data)
