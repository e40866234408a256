import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session
from app.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError, ValidationError
from app.core.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.models.user import User, UserRole
from app.repositories.user_repository import UserRepository
from app.schemas.auth import AuthResponse, PasswordChange, UserLogin, UserRegister
from app.schemas.pagination import MessageResponse
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)


class AuthService:
    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Return the user for valid credentials, otherwise None"""
        user = UserRepository.get_by_email(db, email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def _issue_tokens(user: User) -> AuthResponse:
        access_token, expires_at = create_access_token(user.id, user.email, user.role)
        refresh_token, _ = create_refresh_token(user.id, user.email, user.role)
        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_at=expires_at,
            user=UserResponse.model_validate(user),
        )

    @staticmethod
    def register_user(db: Session, user_data: UserRegister) -> AuthResponse:
        """Register a reader account and issue tokens"""
        if UserRepository.email_taken(db, user_data.email):
            raise ConflictError("Email already registered", code="EMAIL_TAKEN")
        if UserRepository.username_taken(db, user_data.username):
            raise ConflictError("Username already taken", code="USERNAME_TAKEN")

        db_user = User(
            username=user_data.username,
            email=user_data.email.lower(),
            hashed_password=get_password_hash(user_data.password),
            first_name=user_data.first_name or "",
            last_name=user_data.last_name or "",
            role=UserRole.READER.value,
            auth_provider="local",
        )
        UserRepository.create(db, db_user)
        logger.info(f"Registered user {db_user.username} ({db_user.id})")
        return AuthService._issue_tokens(db_user)

    @staticmethod
    def login_user(db: Session, user_data: UserLogin) -> AuthResponse:
        """Log in with email and password"""
        user = AuthService.authenticate_user(db, user_data.email, user_data.password)
        if not user:
            raise UnauthorizedError("Incorrect email or password", code="INVALID_CREDENTIALS")
        if not user.is_active:
            raise ForbiddenError("Account is deactivated", code="ACCOUNT_INACTIVE")

        user.last_login_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)
        return AuthService._issue_tokens(user)

    @staticmethod
    def refresh_tokens(db: Session, refresh_token: str) -> AuthResponse:
        """Issue a new token pair from a refresh token"""
        payload = decode_token(refresh_token, REFRESH_TOKEN)
        if payload is None:
            raise UnauthorizedError("Invalid or expired refresh token", code="INVALID_TOKEN")
        user = UserRepository.get_by_id(db, payload["sub"])
        if user is None:
            raise UnauthorizedError("User not found", code="INVALID_TOKEN")
        if not user.is_active:
            raise ForbiddenError("Account is deactivated", code="ACCOUNT_INACTIVE")
        return AuthService._issue_tokens(user)

    @staticmethod
    def get_current_user(db: Session, token: str) -> User:
        """Resolve an access token to an active user"""
        payload = decode_token(token)
        if payload is None:
            raise UnauthorizedError()

        # role and status come from the database, not from the token
        user = UserRepository.get_by_id(db, payload["sub"])
        if user is None:
            raise UnauthorizedError()
        if not user.is_active:
            raise ForbiddenError("Account is deactivated", code="ACCOUNT_INACTIVE")
        return user

    @staticmethod
    def change_password(db: Session, user: User, password_data: PasswordChange) -> MessageResponse:
        """Change the password of a local account"""
        if user.is_oauth_user and not user.hashed_password:
            raise ValidationError("Password login is not enabled for this account")
        if not verify_password(password_data.current_password, user.hashed_password):
            raise ValidationError("Current password is incorrect", code="INVALID_PASSWORD")
        if verify_password(password_data.new_password, user.hashed_password):
            raise ValidationError("New password must differ from the current password")

        user.hashed_password = get_password_hash(password_data.new_password)
        db.commit()
        logger.info(f"Password changed for user {user.id}")
        return MessageResponse(message="Password changed successfully")
