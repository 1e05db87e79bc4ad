# maturador/modules/analytics/routers.py
from fastapi import APIRouter, Depends, Query

from maturador.core.security import CurrentUser
from maturador.modules.connections.repository import ConnectionRepository, get_connection_repository
from maturador.modules.monitoring.repository import (
    ChipMonitoringRepository, ChipHistoryRepository, AlertRepository,
    get_monitoring_repository, get_history_repository, get_alert_repository,
)
from .services import AnalyticsService, get_analytics_service
from .models import AnalyticsAPI, TIME_RANGES

analytics_router = APIRouter()

@analytics_router.get("", response_model=AnalyticsAPI, summary="Aggregated chip analytics", tags=["Analytics"])
async def get_analytics(
    current_user: CurrentUser,
    time_range: TIME_RANGES = Query("7d"),
    service: AnalyticsService = Depends(get_analytics_service),
    connection_repo: ConnectionRepository = Depends(get_connection_repository),
    monitoring_repo: ChipMonitoringRepository = Depends(get_monitoring_repository),
    history_repo: ChipHistoryRepository = Depends(get_history_repository),
    alert_repo: AlertRepository = Depends(get_alert_repository),
):
    return await service.get_analytics(
        current_user.id, time_range, connection_repo, monitoring_repo, history_repo, alert_repo
    )
