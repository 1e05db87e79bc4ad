# maturador/modules/prompts/repository.py
from typing import List, Optional

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.database import get_database
from maturador.core.repository import BaseRepository, utcnow
from .models import PromptInDB

class PromptRepository(BaseRepository[PromptInDB, PromptInDB, PromptInDB]):
    model = PromptInDB
    collection_name = "saas_prompts"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("usuario_id", 1), ("is_global", 1)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def list_for_user(self, usuario_id: ObjectId, category: Optional[str] = None) -> List[PromptInDB]:
        query: dict = {"usuario_id": usuario_id}
        if category:
            query["category"] = category
        return await self.list_by(query, limit=0, sort=[("created_at", -1), ("_id", -1)])

    async def clear_global(self, usuario_id: ObjectId, except_id: Optional[ObjectId] = None) -> int:
        query: dict = {"usuario_id": usuario_id, "is_global": True}
        if except_id is not None:
            query["_id"] = {"$ne": except_id}
        try:
            result = await self.collection.update_many(query, {"$set": {"is_global": False, "updated_at": utcnow()}})
        except Exception as e:
            self._handle_db_exception(e, "clear_global", query=query)
        return result.modified_count

async def get_prompt_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> PromptRepository:
    return PromptRepository(db)
