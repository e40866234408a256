import logging
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.comment import Comment
from app.models.engagement import NotificationType
from app.models.user import User
from app.repositories.comment_repository import CommentRepository
from app.repositories.engagement_repository import EngagementRepository
from app.schemas.article import ArticleListResponse
from app.schemas.engagement import (
    BookmarkStatusResponse,
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    CommentWithReplies,
    LikeStatusResponse,
)
from app.schemas.pagination import PaginatedResponse, PaginationParams
from app.services.article_service import ArticleService
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class EngagementService:
    """Likes, bookmarks and comments on published articles"""

    # Likes
    @staticmethod
    def like_article(db: Session, user: User, article_id: str) -> LikeStatusResponse:
        """Like a published article and notify its author"""
        article = ArticleService.get_published_or_404(db, article_id)
        EngagementRepository.create_like(db, user.id, article.id)
        NotificationService.notify(
            db, article.author_id, user, NotificationType.LIKE,
            f"{user.full_name} liked your article", article.id,
        )
        db.commit()
        return LikeStatusResponse(
            article_id=article.id, liked=True, likes_count=EngagementRepository.count_likes(db, article.id)
        )

    @staticmethod
    def unlike_article(db: Session, user: User, article_id: str) -> LikeStatusResponse:
        """Remove a like; removing a missing like is a no-op"""
        EngagementRepository.delete_like(db, user.id, article_id)
        return LikeStatusResponse(
            article_id=article_id, liked=False, likes_count=EngagementRepository.count_likes(db, article_id)
        )

    @staticmethod
    def like_status(db: Session, user: User, article_id: str) -> LikeStatusResponse:
        article = ArticleService.get_article_or_404(db, article_id)
        return LikeStatusResponse(
            article_id=article.id,
            liked=EngagementRepository.has_liked(db, user.id, article.id),
            likes_count=EngagementRepository.count_likes(db, article.id),
        )

    # Bookmarks
    @staticmethod
    def bookmark_article(db: Session, user: User, article_id: str) -> BookmarkStatusResponse:
        """Bookmark a published article"""
        article = ArticleService.get_published_or_404(db, article_id)
        EngagementRepository.create_bookmark(db, user.id, article.id)
        return BookmarkStatusResponse(article_id=article.id, bookmarked=True)

    @staticmethod
    def remove_bookmark(db: Session, user: User, article_id: str) -> BookmarkStatusResponse:
        EngagementRepository.delete_bookmark(db, user.id, article_id)
        return BookmarkStatusResponse(article_id=article_id, bookmarked=False)

    @staticmethod
    def bookmarks(db: Session, user: User, pagination: PaginationParams) -> ArticleListResponse:
        """Bookmarked articles, most recently bookmarked first"""
        articles, total = EngagementRepository.bookmarked_articles(db, user.id, pagination.limit, pagination.offset)
        return ArticleService.to_list_response(db, articles, total, pagination.page, pagination.limit)

    # Comments
    @staticmethod
    def list_comments(db: Session, article_id: str, pagination: PaginationParams) -> PaginatedResponse[CommentWithReplies]:
        """Top-level comments with their replies"""
        ArticleService.get_article_or_404(db, article_id)
        comments, total = CommentRepository.top_level_for_article(db, article_id, pagination.limit, pagination.offset)
        items = [
            CommentWithReplies(
                **CommentResponse.model_validate(c).model_dump(),
                replies=[CommentResponse.model_validate(r) for r in c.active_replies],
            )
            for c in comments
        ]
        return PaginatedResponse[CommentWithReplies].build(items, total, pagination.page, pagination.limit)

    @staticmethod
    def create_comment(db: Session, user: User, article_id: str, data: CommentCreate) -> CommentResponse:
        """Comment on a published article, optionally as a reply"""
        article = ArticleService.get_published_or_404(db, article_id)
        if data.parent_id:
            parent = CommentRepository.get_by_id(db, data.parent_id)
            if not parent:
                raise NotFoundError("Parent comment not found", code="COMMENT_NOT_FOUND")
            if parent.article_id != article.id:
                raise ValidationError("Parent comment belongs to a different article")

        comment = CommentRepository.create(db, Comment(
            article_id=article.id,
            user_id=user.id,
            parent_id=data.parent_id,
            content=data.content,
            is_approved=True,
        ))
        NotificationService.notify(
            db, article.author_id, user, NotificationType.COMMENT,
            f"{user.full_name} commented on your article", article.id,
        )
        db.commit()
        db.refresh(comment)
        return CommentResponse.model_validate(comment)

    @staticmethod
    def update_comment(db: Session, user: User, comment_id: str, data: CommentUpdate) -> CommentResponse:
        """Edit one's own comment"""
        comment = CommentRepository.get_by_id(db, comment_id)
        if not comment:
            raise NotFoundError("Comment not found", code="COMMENT_NOT_FOUND")
        if comment.user_id != user.id:
            raise ForbiddenError("You can only edit your own comments")
        comment.content = data.content
        db.commit()
        db.refresh(comment)
        return CommentResponse.model_validate(comment)

    @staticmethod
    def delete_comment(db: Session, user: User, comment_id: str):
        """Soft-delete a comment (owner or admin)"""
        comment = CommentRepository.get_by_id(db, comment_id)
        if not comment:
            raise NotFoundError("Comment not found", code="COMMENT_NOT_FOUND")
        if comment.user_id != user.id and not user.can_manage_users():
            raise ForbiddenError("You can only delete your own comments")
        CommentRepository.soft_delete(db, comment)
        db.commit()
