import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from lash_studio.core.config import settings
from lash_studio.core.security import authenticate_admin, create_access_token, get_optional_admin
from lash_studio.schemas.schemas import AuthStatus, LoginRequest, Token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
def login(login_data: LoginRequest):
    """Login endpoint for the studio admin"""
    if not authenticate_admin(login_data.username, login_data.password):
        logger.warning(f"Failed admin login for {login_data.username!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": login_data.username},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/check", response_model=AuthStatus)
async def check_auth(admin: Optional[str] = Depends(get_optional_admin)):
    """Tell the admin panel whether its stored token is still valid"""
    return {"authenticated": admin is not None, "username": admin}
