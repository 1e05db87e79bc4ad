# maturador/modules/monitoring/repository.py
from datetime import datetime
from typing import Optional, List

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.config import settings
from maturador.core.database import get_database
from maturador.core.repository import BaseRepository
from .models import ChipMonitoringInDB, ChipHistoryInDB, AlertInDB

class ChipMonitoringRepository(BaseRepository[ChipMonitoringInDB, ChipMonitoringInDB, ChipMonitoringInDB]):
    model = ChipMonitoringInDB
    collection_name = "saas_monitoramento"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("usuario_id", 1), ("chip_id", 1)], unique=True)
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def get_for_chip(self, usuario_id: ObjectId, chip_id: str) -> Optional[ChipMonitoringInDB]:
        return await self.get_by({"usuario_id": usuario_id, "chip_id": chip_id})

    async def list_for_user(self, usuario_id: ObjectId) -> List[ChipMonitoringInDB]:
        return await self.list_by({"usuario_id": usuario_id}, limit=0, sort=[("start_date", 1)])

    async def delete_for_chip(self, usuario_id: ObjectId, chip_id: str) -> bool:
        try:
            result = await self.collection.delete_one({"usuario_id": usuario_id, "chip_id": chip_id})
        except Exception as e:
            self._handle_db_exception(e, "delete_for_chip", query={"chip_id": chip_id})
        return result.deleted_count > 0

class ChipHistoryRepository(BaseRepository[ChipHistoryInDB, ChipHistoryInDB, ChipHistoryInDB]):
    model = ChipHistoryInDB
    collection_name = "saas_historico_chips"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("usuario_id", 1), ("timestamp", -1)])
            await self.collection.create_index([("usuario_id", 1), ("chip_id", 1), ("timestamp", -1)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def add(self, entry: ChipHistoryInDB, limit: Optional[int] = None) -> ChipHistoryInDB:
        """Insere e descarta as entradas mais antigas do usuário além do limite."""
        created = await self.create(entry.model_dump(exclude={"id"}))
        await self.trim(entry.usuario_id, limit or settings.MONITORING_HISTORY_LIMIT)
        return created

    async def trim(self, usuario_id: ObjectId, limit: int) -> int:
        query = {"usuario_id": usuario_id}
        try:
            overflow = await self.collection.count_documents(query) - limit
            if overflow <= 0:
                return 0
            cursor = self.collection.find(query, {"_id": 1}).sort([("timestamp", 1), ("_id", 1)]).limit(overflow)
            stale_ids = [doc["_id"] for doc in await cursor.to_list(length=overflow)]
            result = await self.collection.delete_many({"_id": {"$in": stale_ids}})
        except Exception as e:
            self._handle_db_exception(e, "trim", query=query)
        logger.debug(f"History trimmed for user {usuario_id}: {result.deleted_count} entries removed.")
        return result.deleted_count

    async def list_for_chip(self, usuario_id: ObjectId, chip_id: str, limit: int = 50) -> List[ChipHistoryInDB]:
        return await self.list_by(
            {"usuario_id": usuario_id, "chip_id": chip_id},
            limit=limit,
            sort=[("timestamp", -1), ("_id", -1)],
        )

    async def count_events(self, usuario_id: ObjectId, event: str, since: Optional[datetime] = None) -> int:
        query = {"usuario_id": usuario_id, "event": event}
        if since is not None:
            query["timestamp"] = {"$gte": since}
        return await self.count(query)

class AlertRepository(BaseRepository[AlertInDB, AlertInDB, AlertInDB]):
    model = AlertInDB
    collection_name = "saas_alertas"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("usuario_id", 1), ("is_read", 1), ("timestamp", -1)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def list_for_user(self, usuario_id: ObjectId, unread_only: bool = False, limit: int = 100) -> List[AlertInDB]:
        query = {"usuario_id": usuario_id}
        if unread_only:
            query["is_read"] = False
        return await self.list_by(query, limit=limit, sort=[("timestamp", -1), ("_id", -1)])

    async def count_unread(self, usuario_id: ObjectId) -> int:
        return await self.count({"usuario_id": usuario_id, "is_read": False})

async def get_monitoring_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ChipMonitoringRepository:
    return ChipMonitoringRepository(db)

async def get_history_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ChipHistoryRepository:
    return ChipHistoryRepository(db)

async def get_alert_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AlertRepository:
    return AlertRepository(db)
