# maturador/modules/maturador/routers.py
from fastapi import APIRouter, Body, Depends, Path

from maturador.core.security import CurrentUser
from maturador.modules.connections.repository import ConnectionRepository, get_connection_repository
from .repository import MaturadorRepository, get_maturador_repository
from .services import MaturadorService, get_maturador_service
from .models import MaturadorAPI, MaturadorSettingsUpdateAPI, PairCreateAPI

maturador_router = APIRouter()

@maturador_router.get("", response_model=MaturadorAPI, summary="Maturador config, pairs and stats", tags=["Maturador"])
async def get_maturador(
    current_user: CurrentUser,
    service: MaturadorService = Depends(get_maturador_service),
    repo: MaturadorRepository = Depends(get_maturador_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    return await service.get_overview(current_user.id, repo, connection_repo)

@maturador_router.patch("/settings", response_model=MaturadorAPI, summary="Update maturador settings", tags=["Maturador"])
async def update_settings(
    current_user: CurrentUser,
    payload: MaturadorSettingsUpdateAPI = Body(...),
    service: MaturadorService = Depends(get_maturador_service),
    repo: MaturadorRepository = Depends(get_maturador_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    config = await service.update_settings(current_user.id, payload, repo)
    return service.to_api(config, await connection_repo.names_by_id(current_user.id))

@maturador_router.post("/pairs", response_model=MaturadorAPI, status_code=201, summary="Create a chip pair", tags=["Maturador"])
async def add_pair(
    current_user: CurrentUser,
    payload: PairCreateAPI = Body(...),
    service: MaturadorService = Depends(get_maturador_service),
    repo: MaturadorRepository = Depends(get_maturador_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    config = await service.add_pair(current_user.id, payload, repo, connection_repo)
    return service.to_api(config, await connection_repo.names_by_id(current_user.id))

@maturador_router.delete("/pairs/{pair_id}", response_model=MaturadorAPI, summary="Remove a chip pair", tags=["Maturador"])
async def remove_pair(
    current_user: CurrentUser,
    pair_id: str = Path(...),
    service: MaturadorService = Depends(get_maturador_service),
    repo: MaturadorRepository = Depends(get_maturador_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    config = await service.remove_pair(current_user.id, pair_id, repo)
    return service.to_api(config, await connection_repo.names_by_id(current_user.id))

@maturador_router.post("/pairs/{pair_id}/toggle", response_model=MaturadorAPI, summary="Activate/deactivate a pair", tags=["Maturador"])
async def toggle_pair(
    current_user: CurrentUser,
    pair_id: str = Path(...),
    service: MaturadorService = Depends(get_maturador_service),
    repo: MaturadorRepository = Depends(get_maturador_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    config = await service.toggle_pair(current_user.id, pair_id, repo)
    return service.to_api(config, await connection_repo.names_by_id(current_user.id))

@maturador_router.post("/toggle", response_model=MaturadorAPI, summary="Start or stop the maturador", tags=["Maturador"])
async def toggle_running(
    current_user: CurrentUser,
    service: MaturadorService = Depends(get_maturador_service),
    repo: MaturadorRepository = Depends(get_maturador_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    config = await service.toggle_running(current_user.id, repo)
    return service.to_api(config, await connection_repo.names_by_id(current_user.id))
