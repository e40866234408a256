import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, InternalError
from app.models.category import Category
from app.models.user import User, UserFollow, UserInterest
from app.utils.search import LIKE_ESCAPE, contains_pattern

logger = logging.getLogger(__name__)


class UserRepository:
    @staticmethod
    def _active(db: Session):
        return db.query(User).filter(User.deleted_at.is_(None))

    @staticmethod
    def get_by_id(db: Session, user_id: str) -> Optional[User]:
        return UserRepository._active(db).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return UserRepository._active(db).filter(func.lower(User.email) == email.lower()).first()

    @staticmethod
    def get_by_username(db: Session, username: str) -> Optional[User]:
        return UserRepository._active(db).filter(User.username == username).first()

    @staticmethod
    def email_taken(db: Session, email: str) -> bool:
        return db.query(User.id).filter(func.lower(User.email) == email.lower()).first() is not None

    @staticmethod
    def username_taken(db: Session, username: str) -> bool:
        return db.query(User.id).filter(User.username == username).first() is not None

    @staticmethod
    def create(db: Session, user: User) -> User:
        """Insert ``user``, mapping unique violations on email or username to Conflict."""
        email = user.email
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if UserRepository.email_taken(db, email):
                raise ConflictError("Email already registered", code="EMAIL_TAKEN")
            raise ConflictError("Username already taken", code="USERNAME_TAKEN")
        db.refresh(user)
        return user

    @staticmethod
    def find_all(
        db: Session,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[User], int]:
        query = UserRepository._active(db)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if search:
            pattern = contains_pattern(search)
            query = query.filter(or_(
                User.username.ilike(pattern, escape=LIKE_ESCAPE),
                User.email.ilike(pattern, escape=LIKE_ESCAPE),
                User.first_name.ilike(pattern, escape=LIKE_ESCAPE),
                User.last_name.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        total = query.count()
        users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()
        return users, total


class SocialGraphRepository:
    """Follow edges between users and interest edges from users to categories."""

    @staticmethod
    def follow(db: Session, follower_id: str, following_id: str) -> bool:
        """Create the edge; False when it already existed."""
        if SocialGraphRepository.is_following(db, follower_id, following_id):
            return False
        db.add(UserFollow(follower_id=follower_id, following_id=following_id))
        try:
            db.flush()
        except IntegrityError:
            # a concurrent request created the same edge
            db.rollback()
            return False
        return True

    @staticmethod
    def unfollow(db: Session, follower_id: str, following_id: str) -> int:
        deleted = (
            db.query(UserFollow)
            .filter(UserFollow.follower_id == follower_id, UserFollow.following_id == following_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def is_following(db: Session, follower_id: str, following_id: str) -> bool:
        return db.query(UserFollow).filter(
            UserFollow.follower_id == follower_id,
            UserFollow.following_id == following_id,
        ).first() is not None

    @staticmethod
    def followers(db: Session, user_id: str, limit: int, offset: int) -> Tuple[List[User], int]:
        query = (
            UserRepository._active(db)
            .join(UserFollow, UserFollow.follower_id == User.id)
            .filter(UserFollow.following_id == user_id)
        )
        total = query.count()
        users = query.order_by(UserFollow.created_at.desc()).offset(offset).limit(limit).all()
        return users, total

    @staticmethod
    def following(db: Session, user_id: str, limit: int, offset: int) -> Tuple[List[User], int]:
        query = (
            UserRepository._active(db)
            .join(UserFollow, UserFollow.following_id == User.id)
            .filter(UserFollow.follower_id == user_id)
        )
        total = query.count()
        users = query.order_by(UserFollow.created_at.desc()).offset(offset).limit(limit).all()
        return users, total

    @staticmethod
    def count_followers(db: Session, user_id: str) -> int:
        return db.query(func.count()).select_from(UserFollow).filter(UserFollow.following_id == user_id).scalar()

    @staticmethod
    def count_following(db: Session, user_id: str) -> int:
        return db.query(func.count()).select_from(UserFollow).filter(UserFollow.follower_id == user_id).scalar()

    @staticmethod
    def get_following_ids(db: Session, user_id: str) -> List[str]:
        rows = db.query(UserFollow.following_id).filter(UserFollow.follower_id == user_id).distinct().all()
        return [r[0] for r in rows]

    @staticmethod
    def get_interest_ids(db: Session, user_id: str) -> List[str]:
        rows = db.query(UserInterest.category_id).filter(UserInterest.user_id == user_id).distinct().all()
        return [r[0] for r in rows]

    @staticmethod
    def get_interests(db: Session, user_id: str) -> List[Category]:
        return (
            db.query(Category)
            .join(UserInterest, UserInterest.category_id == Category.id)
            .filter(UserInterest.user_id == user_id)
            .order_by(Category.display_order, Category.name)
            .all()
        )

    @staticmethod
    def set_interests(db: Session, user_id: str, category_ids: Sequence[str]):
        """Replace the user's interests as one unit of work.

        Either the whole new set is stored or the previous set is left intact.
        """
        unique_ids = list(dict.fromkeys(category_ids))
        try:
            db.query(UserInterest).filter(UserInterest.user_id == user_id).delete(synchronize_session=False)
            for category_id in unique_ids:
                db.add(UserInterest(user_id=user_id, category_id=category_id))
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Interest update conflicted for user {user_id}: {e}")
            raise ConflictError("Interests were modified concurrently, please retry")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update interests for user {user_id}: {e}")
            raise InternalError("Failed to update interests")
