import logging
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.core.security import get_password_hash
from app.models.engagement import NotificationType
from app.models.user import User, UserRole
from app.repositories.article_repository import ArticleRepository
from app.repositories.category_repository import CategoryRepository
from app.repositories.user_repository import SocialGraphRepository, UserRepository
from app.schemas.pagination import MessageResponse, PaginatedResponse, PaginationParams
from app.schemas.user import (
    CategoryBrief,
    FollowStatusResponse,
    UserAdminUpdate,
    UserBrief,
    UserProfileResponse,
    UserResponse,
    UserUpdate,
)
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class UserService:
    """Accounts, profiles and the social graph"""

    @staticmethod
    def create_user(
        db: Session,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.READER,
        is_verified: bool = False,
    ) -> User:
        """Create a user directly, bypassing registration rules"""
        if UserRepository.email_taken(db, email):
            raise ConflictError("Email already registered", code="EMAIL_TAKEN")
        if UserRepository.username_taken(db, username):
            raise ConflictError("Username already taken", code="USERNAME_TAKEN")
        user = User(
            username=username,
            email=email.lower(),
            hashed_password=get_password_hash(password),
            role=role.value,
            is_verified=is_verified,
            is_active=True,
        )
        return UserRepository.create(db, user)

    @staticmethod
    def get_user_or_404(db: Session, user_id: str) -> User:
        user = UserRepository.get_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    @staticmethod
    def list_users(
        db: Session,
        current_user: User,
        pagination: PaginationParams,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse[UserResponse]:
        if not current_user.can_view_all_users():
            raise ForbiddenError("Editor role required")
        users, total = UserRepository.find_all(
            db,
            role=role.value if role else None,
            is_active=is_active,
            search=search,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        return PaginatedResponse[UserResponse].build(
            [UserResponse.model_validate(u) for u in users], total, pagination.page, pagination.limit
        )

    @staticmethod
    def get_profile(db: Session, user_id: str, viewer: Optional[User] = None) -> UserProfileResponse:
        """Public profile with counts and the viewer's follow state"""
        user = UserService.get_user_or_404(db, user_id)
        is_following = False
        if viewer is not None and viewer.id != user.id:
            is_following = SocialGraphRepository.is_following(db, viewer.id, user.id)
        return UserProfileResponse(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            bio=user.bio,
            profile_image_url=user.profile_image_url,
            role=user.role,
            created_at=user.created_at,
            article_count=ArticleRepository.count_published_by_author(db, user.id),
            followers_count=SocialGraphRepository.count_followers(db, user.id),
            following_count=SocialGraphRepository.count_following(db, user.id),
            is_following=is_following,
            interests=[CategoryBrief.model_validate(c) for c in SocialGraphRepository.get_interests(db, user.id)],
        )

    @staticmethod
    def update_user(db: Session, user_id: str, user_data: UserUpdate, current_user: User) -> UserResponse:
        """Update one's own profile (admins may update anyone)"""
        if current_user.id != user_id and not current_user.can_manage_users():
            raise ForbiddenError("You can only update your own profile")
        user = UserService.get_user_or_404(db, user_id)
        for field, value in user_data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(user, field, value)
        db.commit()
        db.refresh(user)
        return UserResponse.model_validate(user)

    @staticmethod
    def admin_update_user(db: Session, user_id: str, user_data: UserAdminUpdate, current_user: User) -> UserResponse:
        """Change role and account flags"""
        if not current_user.can_manage_users():
            raise ForbiddenError("Admin role required")
        user = UserService.get_user_or_404(db, user_id)
        if user.id == current_user.id and (
            (user_data.role is not None and user_data.role != UserRole.ADMIN) or user_data.is_active is False
        ):
            raise ValidationError("Administrators cannot demote or deactivate themselves")

        if user_data.role is not None:
            user.role = user_data.role.value
        if user_data.is_active is not None:
            user.is_active = user_data.is_active
        if user_data.is_verified is not None:
            user.is_verified = user_data.is_verified
        db.commit()
        db.refresh(user)
        logger.info(f"User {user.id} updated by admin {current_user.id}")
        return UserResponse.model_validate(user)

    @staticmethod
    def delete_user(db: Session, user_id: str, current_user: User):
        """Soft-delete and deactivate an account"""
        if not current_user.can_manage_users():
            raise ForbiddenError("Admin role required")
        if user_id == current_user.id:
            raise ValidationError("Administrators cannot delete themselves")
        user = UserService.get_user_or_404(db, user_id)
        user.deleted_at = datetime.now(timezone.utc)
        user.is_active = False
        db.commit()
        logger.info(f"User {user.id} deleted by admin {current_user.id}")

    # Social graph
    @staticmethod
    def follow(db: Session, current_user: User, target_id: str) -> FollowStatusResponse:
        """Follow another user; following twice is a no-op"""
        if current_user.id == target_id:
            raise ValidationError("You cannot follow yourself", code="SELF_FOLLOW")
        target = UserService.get_user_or_404(db, target_id)

        if SocialGraphRepository.follow(db, current_user.id, target.id):
            NotificationService.notify(
                db,
                target.id,
                current_user,
                NotificationType.FOLLOW,
                f"{current_user.full_name} started following you",
            )
            db.commit()
        return FollowStatusResponse(user_id=target.id, is_following=True)

    @staticmethod
    def unfollow(db: Session, current_user: User, target_id: str) -> FollowStatusResponse:
        """Stop following a user"""
        SocialGraphRepository.unfollow(db, current_user.id, target_id)
        return FollowStatusResponse(user_id=target_id, is_following=False)

    @staticmethod
    def followers(db: Session, user_id: str, pagination: PaginationParams) -> PaginatedResponse[UserBrief]:
        UserService.get_user_or_404(db, user_id)
        users, total = SocialGraphRepository.followers(db, user_id, pagination.limit, pagination.offset)
        return PaginatedResponse[UserBrief].build(
            [UserBrief.model_validate(u) for u in users], total, pagination.page, pagination.limit
        )

    @staticmethod
    def following(db: Session, user_id: str, pagination: PaginationParams) -> PaginatedResponse[UserBrief]:
        UserService.get_user_or_404(db, user_id)
        users, total = SocialGraphRepository.following(db, user_id, pagination.limit, pagination.offset)
        return PaginatedResponse[UserBrief].build(
            [UserBrief.model_validate(u) for u in users], total, pagination.page, pagination.limit
        )

    @staticmethod
    def get_interests(db: Session, user: User) -> List[CategoryBrief]:
        return [CategoryBrief.model_validate(c) for c in SocialGraphRepository.get_interests(db, user.id)]

    @staticmethod
    def set_interests(db: Session, user: User, category_ids: List[str]) -> List[CategoryBrief]:
        """Replace the user's categories of interest"""
        unique_ids = list(dict.fromkeys(category_ids))
        found = CategoryRepository.get_by_ids(db, unique_ids)
        if len(found) != len(unique_ids):
            raise NotFoundError("One or more categories not found", code="CATEGORY_NOT_FOUND")
        SocialGraphRepository.set_interests(db, user.id, unique_ids)
        return UserService.get_interests(db, user)

    @staticmethod
    def clear_interests(db: Session, user: User) -> MessageResponse:
        SocialGraphRepository.set_interests(db, user.id, [])
        return MessageResponse(message="Interests cleared")
