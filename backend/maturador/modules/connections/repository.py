# maturador/modules/connections/repository.py
from typing import List, Dict

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.database import get_database
from maturador.core.repository import BaseRepository
from .models import ConnectionInDB, ConnectionCreateInternal, ConnectionUpdateInternal, CONNECTED_STATES

COLLECTION_NAME = "saas_conexoes"
NEWEST_FIRST = [("created_at", -1), ("_id", -1)]

class ConnectionRepository(BaseRepository[ConnectionInDB, ConnectionCreateInternal, ConnectionUpdateInternal]):
    model = ConnectionInDB
    collection_name = COLLECTION_NAME

    async def create_indexes(self):
        try:
            await self.collection.create_index([("usuario_id", 1), ("created_at", -1)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def list_for_user(self, usuario_id: ObjectId) -> List[ConnectionInDB]:
        return await self.list_by({"usuario_id": usuario_id}, limit=0, sort=NEWEST_FIRST)

    async def list_connected(self, usuario_id: ObjectId) -> List[ConnectionInDB]:
        query = {
            "usuario_id": usuario_id,
            "$or": [
                {"config.connectionState": {"$in": list(CONNECTED_STATES)}},
                {"config.status": "conectado"},
            ],
        }
        return await self.list_by(query, limit=0, sort=NEWEST_FIRST)

    async def count_for_user(self, usuario_id: ObjectId) -> int:
        return await self.count({"usuario_id": usuario_id})

    async def names_by_id(self, usuario_id: ObjectId) -> Dict[str, str]:
        """Mapa id -> nome das conexões do usuário (para enriquecer pares e analytics)."""
        connections = await self.list_for_user(usuario_id)
        return {str(c.id): c.nome for c in connections}

async def get_connection_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ConnectionRepository:
    return ConnectionRepository(db)
