# maturador/modules/ai/repository.py
from typing import List, Optional

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.database import get_database
from maturador.core.repository import BaseRepository, utcnow
from .models import AIConfigInDB, BasePromptInDB

class AIConfigRepository(BaseRepository[AIConfigInDB, AIConfigInDB, AIConfigInDB]):
    model = AIConfigInDB
    collection_name = "saas_ai_configs"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("usuario_id", 1), ("priority", 1)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def list_for_user(self, usuario_id: ObjectId) -> List[AIConfigInDB]:
        return await self.list_by({"usuario_id": usuario_id}, limit=0, sort=[("priority", 1), ("created_at", 1)])

    async def count_for_user(self, usuario_id: ObjectId) -> int:
        return await self.count({"usuario_id": usuario_id})

class BasePromptRepository(BaseRepository[BasePromptInDB, BasePromptInDB, BasePromptInDB]):
    model = BasePromptInDB
    collection_name = "saas_base_prompts"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("usuario_id", 1), ("is_active", 1)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def list_for_user(self, usuario_id: ObjectId) -> List[BasePromptInDB]:
        return await self.list_by({"usuario_id": usuario_id}, limit=0, sort=[("created_at", -1), ("_id", -1)])

    async def deactivate_all(self, usuario_id: ObjectId, except_id: Optional[ObjectId] = None) -> int:
        query: dict = {"usuario_id": usuario_id, "is_active": True}
        if except_id is not None:
            query["_id"] = {"$ne": except_id}
        try:
            result = await self.collection.update_many(query, {"$set": {"is_active": False, "updated_at": utcnow()}})
        except Exception as e:
            self._handle_db_exception(e, "deactivate_all", query=query)
        return result.modified_count

async def get_ai_config_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AIConfigRepository:
    return AIConfigRepository(db)

async def get_base_prompt_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> BasePromptRepository:
    return BasePromptRepository(db)
