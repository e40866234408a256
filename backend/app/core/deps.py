from datetime import datetime
from typing import Optional
from fastapi import Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.core.config import settings
from app.core.exceptions import ForbiddenError, RateLimitError, UnauthorizedError
from app.core.rate_limit import auth_limiter, client_key
from app.services.auth_service import AuthService
from app.models.article import ArticleStatus
from app.models.user import User, UserRole
from app.schemas.article import ArticleListQuery
from app.schemas.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginationParams

SORT_PATTERN = "^(newest|oldest|popular|alphabetical)$"

security = HTTPBearer(auto_error=False)


def get_current_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> User:
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    return AuthService.get_current_user(db, credentials.credentials)


def get_optional_current_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[User]:
    if credentials is None:
        return None
    try:
        return AuthService.get_current_user(db, credentials.credentials)
    except (UnauthorizedError, ForbiddenError):
        return None


def require_role(required: UserRole):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(required):
            raise ForbiddenError(f"{required.value.capitalize()} role required")
        return current_user
    return dependency


get_current_author_user = require_role(UserRole.AUTHOR)
get_current_editor_user = require_role(UserRole.EDITOR)


def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.can_manage_users():
        raise ForbiddenError("Admin role required")
    return current_user


def rate_limit_auth(request: Request):
    """Stricter limit for login and registration."""
    if not settings.ENABLE_RATE_LIMIT:
        return
    allowed, _ = auth_limiter.allow(client_key(request))
    if not allowed:
        raise RateLimitError("Too many authentication attempts. Please try again later.")


def pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)


def article_list_query(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: str = Query("newest", pattern=SORT_PATTERN),
    status: Optional[ArticleStatus] = None,
    author_id: Optional[str] = None,
    category: Optional[str] = Query(None, description="Category slug"),
    tag: Optional[str] = Query(None, description="Tag slug"),
    search: Optional[str] = Query(None, max_length=200),
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
) -> ArticleListQuery:
    return ArticleListQuery(
        page=page,
        limit=limit,
        sort=sort,
        status=status,
        author_id=author_id,
        category=category,
        tag=tag,
        search=search,
        from_date=from_date,
        to_date=to_date,
    )
