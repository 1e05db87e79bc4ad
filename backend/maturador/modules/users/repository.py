# maturador/modules/users/repository.py
from typing import Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from maturador.core.database import get_database
from maturador.core.repository import BaseRepository
from .models import UserInDB, UserCreateInternal, UserUpdateInternal

COLLECTION_NAME = "saas_usuarios"

class UserRepository(BaseRepository[UserInDB, UserCreateInternal, UserUpdateInternal]):
    model = UserInDB
    collection_name = COLLECTION_NAME

    async def create_indexes(self):
        try:
            await self.collection.create_index("email", unique=True)
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        return await self.get_by({"email": email.strip().lower()})

async def get_user_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> UserRepository:
    return UserRepository(db)
