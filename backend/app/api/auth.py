from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.schemas.auth import AuthResponse, PasswordChange, RefreshTokenRequest, UserLogin, UserRegister
from app.schemas.pagination import MessageResponse
from app.schemas.user import UserResponse
from app.services.auth_service import AuthService
from app.core.deps import get_current_user, rate_limit_auth
from app.models.user import User

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit_auth)])
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db)
):
    """Create a reader account and sign in"""
    return AuthService.register_user(db, user_data)


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(rate_limit_auth)])
async def login(
    user_data: UserLogin,
    db: Session = Depends(get_db)
):
    return AuthService.login_user(db, user_data)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    body: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    return AuthService.refresh_tokens(db, body.refresh_token)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    return current_user


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AuthService.change_password(db, current_user, password_data)
