# maturador/modules/users/services.py
from typing import Optional

from fastapi import HTTPException, status
from loguru import logger

from maturador.core.security import verify_password, get_password_hash
from .repository import UserRepository
from .models import UserInDB, UserAPI, UserCreateAPI, UserCreateInternal

class UserService:
    def to_api(self, user_db: UserInDB, chips_em_uso: Optional[int] = None) -> UserAPI:
        return UserAPI(
            id=str(user_db.id),
            nome=user_db.nome,
            email=user_db.email,
            chips_limite=user_db.chips_limite,
            status=user_db.status,
            chips_em_uso=chips_em_uso,
            created_at=user_db.created_at,
        )

    async def authenticate(self, email: str, password: str, user_repo: UserRepository) -> Optional[UserInDB]:
        """Retorna o usuário se existir, estiver ativo e a senha conferir."""
        log = logger.bind(service="UserService", email=email)
        user = await user_repo.get_by_email(email)
        if not user:
            log.info("Login rejected: user not found.")
            return None
        if not user.is_active:
            log.info("Login rejected: user inactive.")
            return None
        if not verify_password(password, user.senha_hash):
            log.info("Login rejected: wrong password.")
            return None
        return user

    async def create_user(self, payload: UserCreateAPI, user_repo: UserRepository) -> UserInDB:
        email = payload.email.strip().lower()
        log = logger.bind(service="UserService", email=email)
        if await user_repo.get_by_email(email):
            log.warning("User provisioning rejected: e-mail already registered.")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="E-mail already registered")

        data = UserCreateInternal(
            nome=payload.nome.strip(),
            email=email,
            senha_hash=get_password_hash(payload.password),
            chips_limite=payload.chips_limite,
            status=payload.status,
        )
        try:
            user = await user_repo.create(data)
        except ValueError:
            # índice único de email (corrida entre dois provisionamentos)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="E-mail already registered")
        log.success(f"User provisioned (ID: {user.id}).")
        return user

    async def update_profile(self, user: UserInDB, nome: str, user_repo: UserRepository) -> UserInDB:
        updated = await user_repo.update(user.id, {"nome": nome.strip()})
        if not updated:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return updated

async def get_user_service() -> UserService:
    return UserService()
