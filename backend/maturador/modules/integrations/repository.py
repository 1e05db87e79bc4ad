# maturador/modules/integrations/repository.py
from typing import Optional

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.database import get_database
from maturador.core.repository import BaseRepository, utcnow
from .models import EvolutionSettingsInDB, EvolutionSettingsUpdateInternal

COLLECTION_NAME = "saas_integracoes"

class EvolutionSettingsRepository(BaseRepository[EvolutionSettingsInDB, EvolutionSettingsInDB, EvolutionSettingsUpdateInternal]):
    model = EvolutionSettingsInDB
    collection_name = COLLECTION_NAME

    async def create_indexes(self):
        try:
            await self.collection.create_index("usuario_id", unique=True)
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def get_for_user(self, usuario_id: ObjectId) -> Optional[EvolutionSettingsInDB]:
        return await self.get_by({"usuario_id": usuario_id})

    async def upsert_for_user(self, usuario_id: ObjectId, data: EvolutionSettingsUpdateInternal) -> EvolutionSettingsInDB:
        """Um documento por usuário: cria na primeira gravação, atualiza nas seguintes."""
        now = utcnow()
        update_data = data.model_dump(exclude_unset=True)
        update_data["updated_at"] = now
        try:
            await self.collection.update_one(
                {"usuario_id": usuario_id},
                {"$set": update_data, "$setOnInsert": {"created_at": now}},
                upsert=True,
            )
        except Exception as e:
            self._handle_db_exception(e, "upsert_for_user", query={"usuario_id": usuario_id})
        saved = await self.get_for_user(usuario_id)
        if saved is None:
            raise RuntimeError("Failed to retrieve integration settings after upsert.")
        return saved

async def get_evolution_settings_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> EvolutionSettingsRepository:
    return EvolutionSettingsRepository(db)
