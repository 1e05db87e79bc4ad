# maturador/core/security.py

import hmac
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from loguru import logger

from maturador.core.config import settings
from maturador.modules.users.repository import UserRepository, get_user_repository
from maturador.modules.users.models import UserInDB

class TokenData(BaseModel):
    username: Optional[str] = None # claim 'sub' (email)
    user_id: Optional[str] = None # claim 'uid'

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

CredentialsException = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)
InactiveUserException = HTTPException(
    status_code=status.HTTP_403_FORBIDDEN,
    detail="Inactive user",
)

# --- Senhas ---

def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verifica se a senha plana corresponde ao hash armazenado."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        # Hash em formato desconhecido (ex: senha gravada em texto puro)
        logger.error(f"Error verifying password (hash might be invalid): {e}")
        return False

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

# --- JWT ---

def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Cria um novo token de acesso JWT."""
    to_encode = data.copy()
    subject = to_encode.get("sub")
    if not subject:
        logger.critical("Attempted to create JWT token without 'sub' (subject) claim.")
        raise ValueError("Missing 'sub' claim in token data for JWT creation")

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now, "nbf": now})

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    logger.info(f"Access token created for subject: {subject}")
    return encoded_jwt

async def get_current_user_from_token(token: Annotated[str, Depends(oauth2_scheme)]) -> TokenData:
    """Decodifica e valida o token JWT da requisição."""
    log = logger.bind(service="AuthTokenValidation")
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        log.warning("Token validation failed: Signature has expired.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError as e:
        log.warning(f"Invalid JWT token format or signature: {e}")
        raise CredentialsException from e

    username: str | None = payload.get("sub")
    if username is None:
        log.warning("Token validation failed: 'sub' claim missing.")
        raise CredentialsException
    return TokenData(username=username, user_id=payload.get("uid"))

async def get_current_active_user(
    token_data: Annotated[TokenData, Depends(get_current_user_from_token)],
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserInDB:
    """Busca o usuário do token e verifica se a conta está ativa."""
    username = token_data.username
    log = logger.bind(service="AuthUserCheck", username=username)

    try:
        # uid identifica o usuário mesmo se o e-mail mudar; tokens sem uid caem no sub
        if token_data.user_id:
            user_db = await user_repo.get_by_id(token_data.user_id)
        else:
            user_db = await user_repo.get_by_email(username)
    except RuntimeError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to retrieve user data due to database error.",
        )

    if user_db is None:
        log.error(f"User '{username}' from valid token NOT FOUND in database!")
        raise CredentialsException
    if not user_db.is_active:
        log.warning(f"User '{username}' (ID: {user_db.id}) is INACTIVE.")
        raise InactiveUserException

    log.debug(f"Authenticated and active user verified: {username}")
    return user_db

CurrentUser = Annotated[UserInDB, Depends(get_current_active_user)]

async def require_api_key(x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None) -> None:
    """Protege endpoints administrativos (provisionamento de usuários)."""
    if not x_api_key or not hmac.compare_digest(x_api_key, settings.API_KEY):
        logger.warning("Rejected request with missing/invalid X-API-Key.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
