# maturador/modules/analytics/services.py
from bson import ObjectId
from loguru import logger

from maturador.core.repository import utcnow
from maturador.modules.connections.repository import ConnectionRepository
from maturador.modules.monitoring.repository import ChipMonitoringRepository, ChipHistoryRepository, AlertRepository
from .models import AnalyticsAPI, ChipPerformance, RANGE_DELTAS

class AnalyticsService:
    """Agregados reais a partir de conexões, monitoramento, histórico e alertas."""

    async def get_analytics(
        self,
        usuario_id: ObjectId,
        time_range: str,
        connection_repo: ConnectionRepository,
        monitoring_repo: ChipMonitoringRepository,
        history_repo: ChipHistoryRepository,
        alert_repo: AlertRepository,
    ) -> AnalyticsAPI:
        now = utcnow()
        since = now - RANGE_DELTAS[time_range]
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        connections = await connection_repo.list_for_user(usuario_id)
        records = {m.chip_id: m for m in await monitoring_repo.list_for_user(usuario_id)}

        performance = []
        for conn in connections:
            record = records.get(str(conn.id))
            performance.append(ChipPerformance(
                chip_id=str(conn.id),
                name=conn.nome,
                messages=record.total_messages if record else 0,
                maturation_percentage=round(record.maturation_percentage, 1) if record else 0.0,
                maturation_status=record.maturation_status if record else None,
                status=conn.status,
            ))
        performance.sort(key=lambda p: p.messages, reverse=True)

        tracked = [records[p.chip_id] for p in performance if p.chip_id in records]
        average = round(sum(r.maturation_percentage for r in tracked) / len(tracked), 1) if tracked else 0.0

        analytics = AnalyticsAPI(
            time_range=time_range,
            total_chips=len(connections),
            active_chips=sum(1 for c in connections if c.status == "ativo"),
            online_chips=sum(1 for r in tracked if r.connection_status == "online"),
            total_messages=sum(r.total_messages for r in tracked),
            messages_in_range=await history_repo.count_events(usuario_id, "message_sent", since),
            messages_today=await history_repo.count_events(usuario_id, "message_sent", start_of_day),
            connection_tests_in_range=await history_repo.count_events(usuario_id, "connection_test", since),
            average_maturation=average,
            unread_alerts=await alert_repo.count_unread(usuario_id),
            chip_performance=performance,
        )
        logger.bind(service="AnalyticsService", usuario_id=str(usuario_id)).debug(
            f"Analytics computed for {time_range}: {analytics.total_chips} chips, {analytics.messages_in_range} messages."
        )
        return analytics

async def get_analytics_service() -> AnalyticsService:
    return AnalyticsService()
