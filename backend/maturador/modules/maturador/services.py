# maturador/modules/maturador/services.py
import random
from typing import Optional, Dict

from bson import ObjectId
from fastapi import HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.config import settings
from maturador.core.repository import utcnow
from maturador.modules.connections.repository import ConnectionRepository
from maturador.modules.monitoring.repository import ChipMonitoringRepository, ChipHistoryRepository
from maturador.modules.monitoring.services import MonitoringService
from .repository import MaturadorRepository
from .models import (
    MaturadorConfigInDB, ChipPair, ChipPairAPI, MaturadorAPI, MaturadorStats,
    MaturadorSettingsUpdateAPI, PairCreateAPI, TickSummary,
)

class MaturadorService:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def to_api(self, config: MaturadorConfigInDB, names: Dict[str, str]) -> MaturadorAPI:
        pairs = [
            ChipPairAPI(**p.model_dump(), chip1_name=names.get(p.chip1), chip2_name=names.get(p.chip2))
            for p in config.pairs
        ]
        stats = MaturadorStats(
            pairs=len(config.pairs),
            active=sum(1 for p in config.pairs if p.status == "running"),
            messages=sum(p.messages_exchanged for p in config.pairs),
        )
        return MaturadorAPI(
            is_running=config.is_running,
            max_messages_per_session=config.max_messages_per_session,
            use_base_prompt=config.use_base_prompt,
            pairs=pairs,
            stats=stats,
        )

    async def get_overview(self, usuario_id: ObjectId, repo: MaturadorRepository, connection_repo: ConnectionRepository) -> MaturadorAPI:
        config = await repo.get_or_create(usuario_id)
        return self.to_api(config, await connection_repo.names_by_id(usuario_id))

    async def update_settings(
        self, usuario_id: ObjectId, payload: MaturadorSettingsUpdateAPI, repo: MaturadorRepository
    ) -> MaturadorConfigInDB:
        config = await repo.get_or_create(usuario_id)
        updated = await repo.update(config.id, payload.model_dump(exclude_none=True))
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Maturador config not found")
        return updated

    async def add_pair(
        self, usuario_id: ObjectId, payload: PairCreateAPI, repo: MaturadorRepository, connection_repo: ConnectionRepository
    ) -> MaturadorConfigInDB:
        log = logger.bind(service="MaturadorService", usuario_id=str(usuario_id))
        for chip_id in (payload.chip1, payload.chip2):
            if not await connection_repo.get_owned(chip_id, usuario_id):
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Chip {chip_id} not found")
        if payload.chip1 == payload.chip2:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A pair needs two different chips")

        config = await repo.get_or_create(usuario_id)
        if any(p.same_chips(payload.chip1, payload.chip2) for p in config.pairs):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This pair already exists")

        pair = ChipPair(chip1=payload.chip1, chip2=payload.chip2, is_active=True, status="stopped")
        log.info(f"Adding pair {pair.id}: {pair.chip1} <-> {pair.chip2}")
        return await repo.save_pairs(config, [*config.pairs, pair])

    async def remove_pair(self, usuario_id: ObjectId, pair_id: str, repo: MaturadorRepository) -> MaturadorConfigInDB:
        config = await repo.get_or_create(usuario_id)
        if not config.find_pair(pair_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pair not found")
        return await repo.save_pairs(config, [p for p in config.pairs if p.id != pair_id])

    async def toggle_pair(self, usuario_id: ObjectId, pair_id: str, repo: MaturadorRepository) -> MaturadorConfigInDB:
        config = await repo.get_or_create(usuario_id)
        pair = config.find_pair(pair_id)
        if not pair:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pair not found")
        pair.is_active = not pair.is_active
        pair.status = "running" if pair.is_active else "paused"
        pair.last_activity = utcnow()
        return await repo.save_pairs(config, config.pairs)

    async def toggle_running(self, usuario_id: ObjectId, repo: MaturadorRepository) -> MaturadorConfigInDB:
        log = logger.bind(service="MaturadorService", usuario_id=str(usuario_id))
        config = await repo.get_or_create(usuario_id)
        if not config.pairs:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Configure at least one chip pair first")
        if not any(p.is_active for p in config.pairs):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Activate at least one pair first")

        starting = not config.is_running
        for pair in config.pairs:
            if starting:
                pair.status = "running" if pair.is_active else "paused"
                if pair.is_active:
                    pair.session_messages = 0
            else:
                pair.status = "stopped"
        log.info(f"Maturador {'started' if starting else 'stopped'}.")
        return await repo.save_pairs(config, config.pairs, is_running=starting)

    async def run_tick(self, db: AsyncIOMotorDatabase, monitoring_service: Optional[MonitoringService] = None) -> TickSummary:
        """Um passo da simulação: pares em execução trocam mensagens com certa probabilidade."""
        repo = MaturadorRepository(db)
        monitoring_repo = ChipMonitoringRepository(db)
        history_repo = ChipHistoryRepository(db)
        monitoring_service = monitoring_service or MonitoringService(rng=self.rng)
        summary = TickSummary()

        for config in await repo.list_running():
            summary.configs += 1
            for pair in config.pairs:
                if pair.status != "running":
                    continue
                if self.rng.random() >= settings.MATURATION_ACTIVITY_PROBABILITY:
                    continue
                # o snapshot pode estar velho: parar/remover pela API vence o tick
                if not await repo.record_exchange(config.id, pair.id):
                    continue
                summary.messages += 1
                for chip_id in (pair.chip1, pair.chip2):
                    await monitoring_service.simulate_activity(config.usuario_id, chip_id, monitoring_repo, history_repo)
                if await repo.pause_if_session_full(config.id, pair.id, config.max_messages_per_session):
                    summary.paused_pairs += 1
                    logger.bind(service="MaturadorService", pair_id=pair.id).info("Session limit reached; pair paused.")

        return summary

async def get_maturador_service() -> MaturadorService:
    return MaturadorService()
