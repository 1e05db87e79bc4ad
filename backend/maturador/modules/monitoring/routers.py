# maturador/modules/monitoring/routers.py
from typing import List

from fastapi import APIRouter, Depends, Path, Query

from maturador.core.security import CurrentUser
from maturador.modules.connections.repository import ConnectionRepository, get_connection_repository
from maturador.modules.integrations.repository import EvolutionSettingsRepository, get_evolution_settings_repository
from .repository import (
    ChipMonitoringRepository, ChipHistoryRepository, AlertRepository,
    get_monitoring_repository, get_history_repository, get_alert_repository,
)
from .services import MonitoringService, get_monitoring_service
from .models import ChipMonitoringAPI, ChipHistoryAPI, AlertAPI

monitoring_router = APIRouter()

# Alertas primeiro: "/alerts" não pode ser capturado por "/{chip_id}"
@monitoring_router.get("/alerts", response_model=List[AlertAPI], summary="List alerts", tags=["Monitoring"])
async def list_alerts(
    current_user: CurrentUser,
    unread_only: bool = Query(False),
    service: MonitoringService = Depends(get_monitoring_service),
    alert_repo: AlertRepository = Depends(get_alert_repository),
):
    return await service.list_alerts(current_user.id, alert_repo, unread_only=unread_only)

@monitoring_router.post("/alerts/{alert_id}/read", response_model=AlertAPI, summary="Mark an alert as read", tags=["Monitoring"])
async def mark_alert_read(
    current_user: CurrentUser,
    alert_id: str = Path(...),
    service: MonitoringService = Depends(get_monitoring_service),
    alert_repo: AlertRepository = Depends(get_alert_repository),
):
    return await service.mark_alert_read(current_user.id, alert_id, alert_repo)

@monitoring_router.get("/", response_model=List[ChipMonitoringAPI], summary="List chip monitoring records", tags=["Monitoring"])
async def list_monitoring(
    current_user: CurrentUser,
    service: MonitoringService = Depends(get_monitoring_service),
    monitoring_repo: ChipMonitoringRepository = Depends(get_monitoring_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    return await service.list_monitoring(current_user.id, monitoring_repo, connection_repo)

@monitoring_router.post("/{chip_id}/init", response_model=ChipMonitoringAPI, summary="Start monitoring a chip", tags=["Monitoring"])
async def initialize_chip(
    current_user: CurrentUser,
    chip_id: str = Path(...),
    service: MonitoringService = Depends(get_monitoring_service),
    monitoring_repo: ChipMonitoringRepository = Depends(get_monitoring_repository),
    history_repo: ChipHistoryRepository = Depends(get_history_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    chip = await service.get_owned_chip(current_user.id, chip_id, connection_repo)
    record = await service.initialize_chip(current_user.id, str(chip.id), monitoring_repo, history_repo)
    return service.to_api(record, chip.nome)

@monitoring_router.post("/{chip_id}/test-connection", response_model=ChipMonitoringAPI, summary="Test a chip's connection", tags=["Monitoring"])
async def test_connection(
    current_user: CurrentUser,
    chip_id: str = Path(...),
    service: MonitoringService = Depends(get_monitoring_service),
    monitoring_repo: ChipMonitoringRepository = Depends(get_monitoring_repository),
    history_repo: ChipHistoryRepository = Depends(get_history_repository),
    alert_repo: AlertRepository = Depends(get_alert_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
    integration_repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    chip = await service.get_owned_chip(current_user.id, chip_id, connection_repo)
    record = await service.test_connection(chip, monitoring_repo, history_repo, alert_repo, integration_repo)
    return service.to_api(record, chip.nome)

@monitoring_router.post("/{chip_id}/activity", response_model=ChipMonitoringAPI, summary="Record one simulated message", tags=["Monitoring"])
async def simulate_activity(
    current_user: CurrentUser,
    chip_id: str = Path(...),
    service: MonitoringService = Depends(get_monitoring_service),
    monitoring_repo: ChipMonitoringRepository = Depends(get_monitoring_repository),
    history_repo: ChipHistoryRepository = Depends(get_history_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    chip = await service.get_owned_chip(current_user.id, chip_id, connection_repo)
    record = await service.simulate_activity(current_user.id, str(chip.id), monitoring_repo, history_repo)
    return service.to_api(record, chip.nome)

@monitoring_router.get("/{chip_id}/history", response_model=List[ChipHistoryAPI], summary="Last 50 history entries of a chip", tags=["Monitoring"])
async def chip_history(
    current_user: CurrentUser,
    chip_id: str = Path(...),
    service: MonitoringService = Depends(get_monitoring_service),
    history_repo: ChipHistoryRepository = Depends(get_history_repository),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
):
    chip = await service.get_owned_chip(current_user.id, chip_id, connection_repo)
    return await service.chip_history(current_user.id, str(chip.id), history_repo)
