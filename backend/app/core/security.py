from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_token(
    subject: str,
    email: str,
    role: str,
    token_type: str = ACCESS_TOKEN,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """Sign a token for the user and return it with its expiry time."""
    if expires_delta is None:
        minutes = (
            settings.ACCESS_TOKEN_EXPIRE_MINUTES
            if token_type == ACCESS_TOKEN
            else settings.REFRESH_TOKEN_EXPIRE_MINUTES
        )
        expires_delta = timedelta(minutes=minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {
        "sub": str(subject),
        "email": email,
        "role": role,
        "token_type": token_type,
        "exp": expire,
    }
    encoded = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded, expire


def create_access_token(subject: str, email: str, role: str) -> tuple[str, datetime]:
    return create_token(subject, email, role, ACCESS_TOKEN)


def create_refresh_token(subject: str, email: str, role: str) -> tuple[str, datetime]:
    return create_token(subject, email, role, REFRESH_TOKEN)


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Optional[Dict[str, Any]]:
    """Return the claims of a valid token of the expected type, else None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if payload.get("token_type") != expected_type or not payload.get("sub"):
        return None
    return payload
