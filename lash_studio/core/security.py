import hmac
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from lash_studio.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


@lru_cache(maxsize=1)
def _admin_password_hash() -> str:
    return settings.ADMIN_PASSWORD_HASH or get_password_hash(settings.ADMIN_PASSWORD)


def authenticate_admin(username: str, password: str) -> bool:
    """Check the single configured admin credential"""
    if not username or not password:
        return False
    if not hmac.compare_digest(username, settings.ADMIN_USERNAME):
        return False
    return verify_password(password, _admin_password_hash())


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Create a JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "role": "admin"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_admin_token(token: str) -> Optional[str]:
    """Return the admin username carried by a token, or None if it is not valid"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    username = payload.get("sub")
    if username != settings.ADMIN_USERNAME or payload.get("role") != "admin":
        return None
    return username


async def get_current_admin(token: str = Depends(oauth2_scheme)) -> str:
    """Ensure the request carries a valid admin token; returns the admin username"""
    username = decode_admin_token(token)
    if username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return username


async def get_optional_admin(token: Optional[str] = Depends(optional_oauth2_scheme)) -> Optional[str]:
    """Admin username if a valid token was sent, None otherwise"""
    if not token:
        return None
    return decode_admin_token(token)
