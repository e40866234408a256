import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    """Fixed, totally ordered set of roles."""

    READER = "reader"
    AUTHOR = "author"
    EDITOR = "editor"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]

    def has_permission(self, required: "UserRole") -> bool:
        return has_permission(self, required)


ROLE_RANKS = {
    UserRole.READER: 1,
    UserRole.AUTHOR: 2,
    UserRole.EDITOR: 3,
    UserRole.ADMIN: 4,
}


def has_permission(actual, required) -> bool:
    """True iff ``actual`` ranks at or above ``required``; unknown roles rank 0."""
    try:
        actual_rank = ROLE_RANKS[UserRole(actual)]
    except ValueError:
        return False
    return actual_rank >= ROLE_RANKS[UserRole(required)]


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)  # empty for external-identity users
    first_name = Column(String(100), default="")
    last_name = Column(String(100), default="")
    bio = Column(Text, default="")
    profile_image_url = Column(String(500))
    role = Column(String(20), nullable=False, default=UserRole.READER.value, index=True)
    is_verified = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True, index=True)
    last_login_at = Column(DateTime(timezone=True))
    google_id = Column(String(255), unique=True)
    auth_provider = Column(String(20), default="local")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    deleted_at = Column(DateTime(timezone=True), index=True)

    articles = relationship("Article", back_populates="author", lazy="dynamic")

    @property
    def full_name(self) -> str:
        if not self.first_name and not self.last_name:
            return self.username
        if not self.first_name:
            return self.last_name
        if not self.last_name:
            return self.first_name
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_oauth_user(self) -> bool:
        return self.auth_provider not in (None, "", "local")

    def has_role(self, required: UserRole) -> bool:
        return has_permission(self.role, required)

    # Authorization rules
    def can_create_article(self) -> bool:
        return bool(self.is_active) and self.has_role(UserRole.AUTHOR)

    def can_edit_article(self, article) -> bool:
        if not self.is_active:
            return False
        if self.id == article.author_id:
            return True
        return self.has_role(UserRole.EDITOR)

    def can_delete_article(self, article) -> bool:
        return self.can_edit_article(article)

    def can_publish_article(self) -> bool:
        return bool(self.is_active) and self.has_role(UserRole.EDITOR)

    def can_manage_categories(self) -> bool:
        return bool(self.is_active) and self.has_role(UserRole.EDITOR)

    def can_manage_tags(self) -> bool:
        return bool(self.is_active) and self.has_role(UserRole.EDITOR)

    def can_view_all_users(self) -> bool:
        return bool(self.is_active) and self.has_role(UserRole.EDITOR)

    def can_manage_users(self) -> bool:
        # exact match, not a rank comparison
        return bool(self.is_active) and self.role == UserRole.ADMIN.value

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


class UserFollow(Base):
    """Directed follow edge; followers and following are separate indexed lookups."""

    __tablename__ = "user_follows"

    follower_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    following_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("idx_user_follows_follower", "follower_id"),
        Index("idx_user_follows_following", "following_id"),
    )


class UserInterest(Base):
    __tablename__ = "user_interests"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
