# maturador/api/endpoints/auth.py

from typing import Annotated
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from maturador.core import security
from maturador.core.config import settings
from maturador.core.logging_config import trace_id_var
from maturador.modules.users.models import Token
from maturador.modules.users.repository import UserRepository, get_user_repository
from maturador.modules.users.services import UserService, get_user_service

router = APIRouter()

@router.post("/login", response_model=Token, tags=["Authentication"])
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    user_service: Annotated[UserService, Depends(get_user_service)],
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
):
    """
    Authenticates using username (email) & password form data.
    Returns a JWT access token and the user's profile on success.
    """
    username = form_data.username.strip().lower()
    log = logger.bind(trace_id=trace_id_var.get(), api_endpoint="/auth/login", username=username)
    log.info("Login attempt received.")

    user = await user_service.authenticate(email=username, password=form_data.password, user_repo=user_repo)
    if not user:
        log.warning("Authentication failed: invalid credentials or inactive user.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    log.success(f"Authentication successful for user: {username} (ID: {user.id})")
    access_token = security.create_access_token(
        data={"sub": user.email, "uid": str(user.id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return Token(access_token=access_token, token_type="bearer", user=user_service.to_api(user))
