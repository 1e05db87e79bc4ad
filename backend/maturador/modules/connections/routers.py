# maturador/modules/connections/routers.py
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Response, status

from maturador.core.security import CurrentUser
from maturador.modules.integrations.repository import EvolutionSettingsRepository, get_evolution_settings_repository
from maturador.modules.maturador.repository import MaturadorRepository, get_maturador_repository
from maturador.modules.monitoring.repository import ChipMonitoringRepository, get_monitoring_repository
from .repository import ConnectionRepository, get_connection_repository
from .services import ConnectionService, get_connection_service
from .models import ConnectionAPI, ConnectionCreateAPI, ConnectionUpdateAPI, ChipBehavior, QRCodeAPI

connections_router = APIRouter()

@connections_router.get("/", response_model=List[ConnectionAPI], summary="List my connections", tags=["Connections"])
async def list_connections(
    current_user: CurrentUser,
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
):
    return await service.list_connections(current_user.id, repo)

@connections_router.get("/active", response_model=List[ConnectionAPI], summary="List connected chips", tags=["Connections"])
async def list_active_connections(
    current_user: CurrentUser,
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
):
    return await service.list_active(current_user.id, repo)

@connections_router.post(
    "/",
    response_model=ConnectionAPI,
    status_code=status.HTTP_201_CREATED,
    summary="Create a connection (and its Evolution instance)",
    tags=["Connections"],
)
async def create_connection(
    current_user: CurrentUser,
    payload: ConnectionCreateAPI = Body(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
    integration_repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    created = await service.create_connection(current_user, payload, repo, integration_repo)
    return service.to_api(created)

@connections_router.get("/{connection_id}", response_model=ConnectionAPI, summary="Get a connection", tags=["Connections"])
async def get_connection(
    current_user: CurrentUser,
    connection_id: str = Path(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
):
    return service.to_api(await service.get_owned(current_user.id, connection_id, repo))

@connections_router.patch("/{connection_id}", response_model=ConnectionAPI, summary="Update a connection", tags=["Connections"])
async def update_connection(
    current_user: CurrentUser,
    connection_id: str = Path(...),
    payload: ConnectionUpdateAPI = Body(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
):
    return service.to_api(await service.update_connection(current_user.id, connection_id, payload, repo))

@connections_router.delete(
    "/{connection_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a connection", tags=["Connections"]
)
async def delete_connection(
    current_user: CurrentUser,
    connection_id: str = Path(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
    maturador_repo: MaturadorRepository = Depends(get_maturador_repository),
    monitoring_repo: ChipMonitoringRepository = Depends(get_monitoring_repository),
):
    await service.delete_connection(current_user.id, connection_id, repo, maturador_repo, monitoring_repo)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@connections_router.post("/{connection_id}/instance", response_model=QRCodeAPI, summary="(Re)create the Evolution instance", tags=["Connections"])
async def create_instance(
    current_user: CurrentUser,
    connection_id: str = Path(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
    integration_repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    return await service.create_instance(current_user.id, connection_id, repo, integration_repo)

@connections_router.get("/{connection_id}/qrcode", response_model=QRCodeAPI, summary="Get the pairing QR code", tags=["Connections"])
async def get_qr_code(
    current_user: CurrentUser,
    connection_id: str = Path(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
    integration_repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    return await service.get_qr_code(current_user.id, connection_id, repo, integration_repo)

@connections_router.post("/{connection_id}/refresh", response_model=ConnectionAPI, summary="Pull instance data from Evolution", tags=["Connections"])
async def refresh_connection(
    current_user: CurrentUser,
    connection_id: str = Path(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
    integration_repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    return service.to_api(await service.refresh_from_evolution(current_user.id, connection_id, repo, integration_repo))

@connections_router.put("/{connection_id}/behavior", response_model=ConnectionAPI, summary="Replace the chip's AI behaviour", tags=["Connections"])
async def update_behavior(
    current_user: CurrentUser,
    connection_id: str = Path(...),
    behavior: ChipBehavior = Body(...),
    service: ConnectionService = Depends(get_connection_service),
    repo: ConnectionRepository = Depends(get_connection_repository),
):
    return service.to_api(await service.update_behavior(current_user.id, connection_id, behavior, repo))
