# maturador/modules/users/routers.py
from fastapi import APIRouter, Body, Depends, status

from maturador.core.security import CurrentUser, require_api_key
from maturador.modules.connections.repository import ConnectionRepository, get_connection_repository
from .services import UserService, get_user_service
from .repository import UserRepository, get_user_repository
from .models import UserAPI, UserCreateAPI, UserProfileUpdateAPI

users_router = APIRouter()

@users_router.get("/me", response_model=UserAPI, summary="Get my profile", tags=["Users"])
async def read_me(
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    chips_em_uso = await connection_repo.count({"usuario_id": current_user.id})
    return user_service.to_api(current_user, chips_em_uso=chips_em_uso)

@users_router.patch("/me", response_model=UserAPI, summary="Update my profile", tags=["Users"])
async def update_me(
    current_user: CurrentUser,
    payload: UserProfileUpdateAPI = Body(...),
    user_service: UserService = Depends(get_user_service),
    user_repo: UserRepository = Depends(get_user_repository),
):
    updated = await user_service.update_profile(current_user, payload.nome, user_repo)
    return user_service.to_api(updated)

@users_router.post(
    "/",
    response_model=UserAPI,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
    summary="Provision a dashboard user",
    tags=["Users - Admin"],
)
async def create_user(
    payload: UserCreateAPI,
    user_service: UserService = Depends(get_user_service),
    user_repo: UserRepository = Depends(get_user_repository),
):
    user = await user_service.create_user(payload, user_repo)
    return user_service.to_api(user, chips_em_uso=0)
