# maturador/modules/monitoring/services.py
import random
from typing import Optional, List, Tuple

import httpx
from bson import ObjectId
from fastapi import HTTPException, status
from loguru import logger

from maturador.core.config import settings
from maturador.core.repository import utcnow
from maturador.modules.connections.models import ConnectionInDB, CONNECTED_STATES
from maturador.modules.connections.repository import ConnectionRepository
from maturador.modules.integrations.repository import EvolutionSettingsRepository
from maturador.services.evolution_client import EvolutionClient
from .repository import ChipMonitoringRepository, ChipHistoryRepository, AlertRepository
from .models import (
    ChipMonitoringInDB, ChipHistoryInDB, AlertInDB,
    ChipMonitoringAPI, ChipHistoryAPI, AlertAPI, MATURATION_STATUSES,
)

HISTORY_PAGE_SIZE = 50

def maturation_status_for(percentage: float) -> MATURATION_STATUSES:
    if percentage < 25:
        return "heating"
    if percentage < 75:
        return "ready"
    return "active"

class MonitoringService:
    """Maturação simulada, testes de conexão, histórico e alertas dos chips."""

    def __init__(self, rng: Optional[random.Random] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.rng = rng or random.Random()
        self.transport = transport

    # --- Conversões ---
    def to_api(self, record: ChipMonitoringInDB, chip_name: Optional[str] = None) -> ChipMonitoringAPI:
        return ChipMonitoringAPI(chip_name=chip_name, **record.model_dump(exclude={"id", "usuario_id", "created_at", "updated_at"}))

    def history_to_api(self, entry: ChipHistoryInDB) -> ChipHistoryAPI:
        return ChipHistoryAPI(id=str(entry.id), chip_id=entry.chip_id, timestamp=entry.timestamp, event=entry.event, details=entry.details)

    def alert_to_api(self, alert: AlertInDB) -> AlertAPI:
        return AlertAPI(
            id=str(alert.id), chip_id=alert.chip_id, chip_name=alert.chip_name, type=alert.type,
            message=alert.message, timestamp=alert.timestamp, is_read=alert.is_read,
        )

    async def get_owned_chip(self, usuario_id: ObjectId, chip_id: str, connection_repo: ConnectionRepository) -> ConnectionInDB:
        chip = await connection_repo.get_owned(chip_id, usuario_id)
        if not chip:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chip not found")
        return chip

    async def add_history(self, usuario_id: ObjectId, chip_id: str, event: str, details: str, history_repo: ChipHistoryRepository):
        await history_repo.add(ChipHistoryInDB(usuario_id=usuario_id, chip_id=chip_id, event=event, details=details))

    # --- Operações ---
    async def initialize_chip(
        self,
        usuario_id: ObjectId,
        chip_id: str,
        monitoring_repo: ChipMonitoringRepository,
        history_repo: ChipHistoryRepository,
    ) -> ChipMonitoringInDB:
        """Idempotente: se o chip já é monitorado, devolve o registro existente."""
        existing = await monitoring_repo.get_for_chip(usuario_id, chip_id)
        if existing:
            return existing

        now = utcnow()
        record = ChipMonitoringInDB(
            chip_id=chip_id,
            usuario_id=usuario_id,
            maturation_percentage=self.rng.randrange(100),
            maturation_status="heating",
            start_date=now,
            last_activity=now,
            last_connection_test=now,
        )
        try:
            created = await monitoring_repo.create(record.model_dump(exclude={"id"}))
        except ValueError:
            # outra requisição/tick inicializou o mesmo chip (índice único)
            concurrent = await monitoring_repo.get_for_chip(usuario_id, chip_id)
            if concurrent is None:
                raise
            return concurrent
        await self.add_history(usuario_id, chip_id, "started", "Chip inicializado", history_repo)
        logger.bind(service="MonitoringService", chip_id=chip_id).info(
            f"Monitoring initialized at {created.maturation_percentage}%."
        )
        return created

    async def simulate_activity(
        self,
        usuario_id: ObjectId,
        chip_id: str,
        monitoring_repo: ChipMonitoringRepository,
        history_repo: ChipHistoryRepository,
    ) -> ChipMonitoringInDB:
        record = await self.initialize_chip(usuario_id, chip_id, monitoring_repo, history_repo)
        percentage = min(100.0, record.maturation_percentage + self.rng.random() * 2)
        updated = await monitoring_repo.update(record.id, {
            "total_messages": record.total_messages + 1,
            "maturation_percentage": percentage,
            "maturation_status": maturation_status_for(percentage),
            "last_activity": utcnow(),
        })
        if updated is None:
            raise RuntimeError(f"Monitoring record vanished for chip {chip_id}")
        await self.add_history(usuario_id, chip_id, "message_sent", "Mensagem enviada com sucesso", history_repo)
        return updated

    async def _probe_link(
        self,
        chip: ConnectionInDB,
        integration_repo: EvolutionSettingsRepository,
    ) -> Tuple[bool, bool]:
        """(online, bloqueado). Usa a Evolution quando o chip tem instância; senão simula."""
        instance_name = chip.config.evolutionInstance
        evo_settings = await integration_repo.get_for_user(chip.usuario_id) if instance_name else None
        endpoint = (chip.config.evolutionConfig.endpoint if chip.config.evolutionConfig else None) or (
            evo_settings.endpoint if evo_settings else None
        )
        if instance_name and evo_settings and endpoint:
            result = await EvolutionClient(endpoint, transport=self.transport).get_instance(instance_name)
            return result.success and result.status in CONNECTED_STATES, False

        online = self.rng.random() < settings.MONITORING_ONLINE_PROBABILITY
        blocked = (not online) and self.rng.random() < settings.MONITORING_BLOCKED_PROBABILITY
        return online, blocked

    async def test_connection(
        self,
        chip: ConnectionInDB,
        monitoring_repo: ChipMonitoringRepository,
        history_repo: ChipHistoryRepository,
        alert_repo: AlertRepository,
        integration_repo: EvolutionSettingsRepository,
    ) -> ChipMonitoringInDB:
        chip_id = str(chip.id)
        log = logger.bind(service="MonitoringService", chip_id=chip_id)
        record = await self.initialize_chip(chip.usuario_id, chip_id, monitoring_repo, history_repo)
        await monitoring_repo.update(record.id, {"connection_status": "testing"})

        try:
            online, blocked = await self._probe_link(chip, integration_repo)
        except Exception as e:
            # falha inesperada no teste conta como offline; o registro não pode ficar em "testing"
            log.exception(f"Connection probe crashed: {e}")
            online, blocked = False, False
        updated = await monitoring_repo.update(record.id, {
            "connection_status": "online" if online else "offline",
            "last_connection_test": utcnow(),
            "is_blocked": blocked,
            "error_count": 0 if online else record.error_count + 1,
        })
        if updated is None:
            raise RuntimeError(f"Monitoring record vanished for chip {chip_id}")

        details = f"Status: {'Online' if online else 'Offline'}{' (Bloqueado)' if blocked else ''}"
        await self.add_history(chip.usuario_id, chip_id, "connection_test", details, history_repo)

        if not online:
            await alert_repo.create(AlertInDB(
                usuario_id=chip.usuario_id,
                chip_id=chip_id,
                chip_name=chip.nome,
                type="blocked" if blocked else "connection_failed",
                message="Chip foi bloqueado" if blocked else "Falha na conexão com o chip",
            ).model_dump(exclude={"id"}))
            log.warning(f"Connection test failed ({details}). Alert raised.")
        else:
            log.info("Connection test passed.")
        return updated

    async def list_monitoring(
        self, usuario_id: ObjectId, monitoring_repo: ChipMonitoringRepository, connection_repo: ConnectionRepository
    ) -> List[ChipMonitoringAPI]:
        names = await connection_repo.names_by_id(usuario_id)
        records = await monitoring_repo.list_for_user(usuario_id)
        return [self.to_api(r, names.get(r.chip_id)) for r in records]

    async def chip_history(self, usuario_id: ObjectId, chip_id: str, history_repo: ChipHistoryRepository) -> List[ChipHistoryAPI]:
        entries = await history_repo.list_for_chip(usuario_id, chip_id, limit=HISTORY_PAGE_SIZE)
        return [self.history_to_api(e) for e in entries]

    async def list_alerts(self, usuario_id: ObjectId, alert_repo: AlertRepository, unread_only: bool = False) -> List[AlertAPI]:
        return [self.alert_to_api(a) for a in await alert_repo.list_for_user(usuario_id, unread_only=unread_only)]

    async def mark_alert_read(self, usuario_id: ObjectId, alert_id: str, alert_repo: AlertRepository) -> AlertAPI:
        alert = await alert_repo.get_owned(alert_id, usuario_id)
        if not alert:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
        updated = await alert_repo.update(alert.id, {"is_read": True})
        return self.alert_to_api(updated or alert)

async def get_monitoring_service() -> MonitoringService:
    return MonitoringService()
