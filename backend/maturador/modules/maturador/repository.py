# maturador/modules/maturador/repository.py
from typing import List

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.database import get_database
from maturador.core.repository import BaseRepository, utcnow
from .models import MaturadorConfigInDB, ChipPair

COLLECTION_NAME = "saas_maturador"

class MaturadorRepository(BaseRepository[MaturadorConfigInDB, MaturadorConfigInDB, MaturadorConfigInDB]):
    model = MaturadorConfigInDB
    collection_name = COLLECTION_NAME

    async def create_indexes(self):
        try:
            await self.collection.create_index("usuario_id", unique=True)
            await self.collection.create_index("is_running")
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def get_or_create(self, usuario_id: ObjectId) -> MaturadorConfigInDB:
        """Garante o documento do usuário com os valores padrão."""
        existing = await self.get_by({"usuario_id": usuario_id})
        if existing:
            return existing
        defaults = MaturadorConfigInDB(usuario_id=usuario_id).model_dump(exclude={"id", "created_at", "updated_at", "usuario_id"})
        now = utcnow()
        try:
            await self.collection.update_one(
                {"usuario_id": usuario_id},
                {"$setOnInsert": {**defaults, "created_at": now, "updated_at": now}},
                upsert=True,
            )
        except Exception as e:
            self._handle_db_exception(e, "get_or_create", query={"usuario_id": usuario_id})
        created = await self.get_by({"usuario_id": usuario_id})
        if created is None:
            raise RuntimeError("Failed to retrieve maturador config after upsert.")
        return created

    async def save_pairs(self, config: MaturadorConfigInDB, pairs: List[ChipPair], **fields) -> MaturadorConfigInDB:
        """Regrava a lista de pares inteira (e campos extras) do documento."""
        data = {"pairs": [p.model_dump() for p in pairs], **fields}
        updated = await self.update(config.id, data)
        if updated is None:
            raise RuntimeError(f"Maturador config {config.id} disappeared during update.")
        return updated

    async def list_running(self) -> List[MaturadorConfigInDB]:
        return await self.list_by({"is_running": True}, limit=0)

    @staticmethod
    def _running_pair_filter(config_id: ObjectId, pair_id: str, **pair_conditions) -> dict:
        return {
            "_id": config_id,
            "is_running": True,
            "pairs": {"$elemMatch": {"id": pair_id, "status": "running", **pair_conditions}},
        }

    async def record_exchange(self, config_id: ObjectId, pair_id: str) -> bool:
        """Conta uma mensagem no par, só se ele e o maturador ainda estiverem rodando.

        Atualiza o elemento no lugar ($inc posicional) para não sobrescrever
        mudanças feitas pela API enquanto o tick roda.
        """
        now = utcnow()
        query = self._running_pair_filter(config_id, pair_id)
        try:
            result = await self.collection.update_one(query, {
                "$inc": {"pairs.$.messages_exchanged": 1, "pairs.$.session_messages": 1},
                "$set": {"pairs.$.last_activity": now, "updated_at": now},
            })
        except Exception as e:
            self._handle_db_exception(e, "record_exchange", config_id, query=query)
        return result.modified_count > 0

    async def pause_if_session_full(self, config_id: ObjectId, pair_id: str, max_messages: int) -> bool:
        """Pausa o par quando session_messages chegou ao limite da sessão."""
        query = self._running_pair_filter(config_id, pair_id, session_messages={"$gte": max_messages})
        try:
            result = await self.collection.update_one(
                query, {"$set": {"pairs.$.status": "paused", "updated_at": utcnow()}}
            )
        except Exception as e:
            self._handle_db_exception(e, "pause_if_session_full", config_id, query=query)
        return result.modified_count > 0

    async def remove_chip(self, usuario_id: ObjectId, chip_id: str) -> int:
        """Remove os pares que usam o chip. Retorna quantos pares saíram."""
        config = await self.get_by({"usuario_id": usuario_id})
        if not config:
            return 0
        remaining = [p for p in config.pairs if not p.involves(chip_id)]
        removed = len(config.pairs) - len(remaining)
        if removed:
            fields = {} if any(p.is_active for p in remaining) else {"is_running": False}
            await self.save_pairs(config, remaining, **fields)
            logger.info(f"Removed {removed} maturador pair(s) using chip {chip_id}.")
        return removed

async def get_maturador_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> MaturadorRepository:
    return MaturadorRepository(db)
