import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import ConflictError
from app.models.article import Article
from app.models.engagement import Bookmark, Like, Notification

logger = logging.getLogger(__name__)


class EngagementRepository:
    # Likes
    @staticmethod
    def create_like(db: Session, user_id: str, article_id: str) -> Like:
        like = Like(user_id=user_id, article_id=article_id)
        db.add(like)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Article already liked", code="ALREADY_LIKED")
        db.refresh(like)
        return like

    @staticmethod
    def delete_like(db: Session, user_id: str, article_id: str) -> int:
        deleted = db.query(Like).filter(Like.user_id == user_id, Like.article_id == article_id).delete(
            synchronize_session=False
        )
        db.commit()
        return deleted

    @staticmethod
    def has_liked(db: Session, user_id: str, article_id: str) -> bool:
        return db.query(Like.id).filter(Like.user_id == user_id, Like.article_id == article_id).first() is not None

    @staticmethod
    def count_likes(db: Session, article_id: str) -> int:
        return db.query(func.count(Like.id)).filter(Like.article_id == article_id).scalar()

    # Bookmarks
    @staticmethod
    def create_bookmark(db: Session, user_id: str, article_id: str) -> Bookmark:
        bookmark = Bookmark(user_id=user_id, article_id=article_id)
        db.add(bookmark)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Article already bookmarked", code="ALREADY_BOOKMARKED")
        db.refresh(bookmark)
        return bookmark

    @staticmethod
    def delete_bookmark(db: Session, user_id: str, article_id: str) -> int:
        deleted = db.query(Bookmark).filter(Bookmark.user_id == user_id, Bookmark.article_id == article_id).delete(
            synchronize_session=False
        )
        db.commit()
        return deleted

    @staticmethod
    def has_bookmarked(db: Session, user_id: str, article_id: str) -> bool:
        return db.query(Bookmark.id).filter(
            Bookmark.user_id == user_id, Bookmark.article_id == article_id
        ).first() is not None

    @staticmethod
    def bookmarked_articles(db: Session, user_id: str, limit: int, offset: int) -> Tuple[List[Article], int]:
        query = (
            db.query(Article)
            .join(Bookmark, Bookmark.article_id == Article.id)
            .filter(Bookmark.user_id == user_id, Article.deleted_at.is_(None))
        )
        total = query.count()
        articles = (
            query.options(
                selectinload(Article.author),
                selectinload(Article.categories),
                selectinload(Article.tags),
            )
            .order_by(Bookmark.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return articles, total

    # Notifications
    @staticmethod
    def create_notification(
        db: Session,
        user_id: str,
        actor_id: str,
        type: str,
        message: str,
        article_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            actor_id=actor_id,
            type=type,
            message=message,
            article_id=article_id,
        )
        db.add(notification)
        return notification

    @staticmethod
    def notifications(db: Session, user_id: str, limit: int, offset: int) -> Tuple[List[Notification], int]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        total = query.count()
        items = (
            query.options(selectinload(Notification.actor))
            .order_by(Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def unread_count(db: Session, user_id: str) -> int:
        return db.query(func.count(Notification.id)).filter(
            Notification.user_id == user_id, Notification.read.is_(False)
        ).scalar()

    @staticmethod
    def mark_as_read(db: Session, user_id: str, notification_id: str) -> int:
        """Rows affected; zero when the notification is missing or belongs to someone else."""
        result = db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount

    @staticmethod
    def mark_all_as_read(db: Session, user_id: str) -> int:
        result = db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount
