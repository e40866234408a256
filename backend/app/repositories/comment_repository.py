from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from app.models.comment import Comment


class CommentRepository:
    @staticmethod
    def get_by_id(db: Session, comment_id: str) -> Optional[Comment]:
        return (
            db.query(Comment)
            .options(selectinload(Comment.user))
            .filter(Comment.id == comment_id, Comment.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def top_level_for_article(db: Session, article_id: str, limit: int, offset: int) -> Tuple[List[Comment], int]:
        query = db.query(Comment).filter(
            Comment.article_id == article_id,
            Comment.parent_id.is_(None),
            Comment.deleted_at.is_(None),
            Comment.is_approved.is_(True),
        )
        total = query.count()
        comments = (
            query.options(
                selectinload(Comment.user),
                selectinload(Comment.replies).selectinload(Comment.user),
            )
            .order_by(Comment.created_at.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return comments, total

    @staticmethod
    def create(db: Session, comment: Comment) -> Comment:
        db.add(comment)
        db.flush()
        return comment

    @staticmethod
    def soft_delete(db: Session, comment: Comment):
        comment.deleted_at = datetime.now(timezone.utc)
