# maturador/core/database.py

from contextlib import AbstractAsyncContextManager
from typing import Optional, cast

import motor.motor_asyncio
from motor.motor_asyncio import AsyncIOMotorDatabase
import redis.asyncio as redis
from fastapi import HTTPException, status
from loguru import logger

from maturador.core.config import settings

DEFAULT_DB_NAME = "ox_maturador"

def _db_name_from_uri(uri: str) -> str:
    uri_path = uri.rstrip('/').split('/')[-1]
    db_name = uri_path.split('?')[0]
    if not db_name or '@' in db_name or ':' in db_name or len(db_name) > 63:
        logger.warning(f"Could not parse DB name from URI, using default: {DEFAULT_DB_NAME}")
        return DEFAULT_DB_NAME
    return db_name

# --- MongoDB ---
class MongoDbContext(AbstractAsyncContextManager):
    """Conexão Motor; usada pelo lifespan da API e pelas tasks Celery."""

    def __init__(self, uri: Optional[str] = None):
        self.uri = uri or settings.MONGODB_URI
        self.client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self):
        """Establishes and verifies connection to MongoDB."""
        if self.client is not None and self.db is not None:
            logger.info("MongoDB connection already established.")
            return

        logger.info("Connecting to MongoDB...")
        try:
            self.client = motor.motor_asyncio.AsyncIOMotorClient(
                self.uri,
                uuidRepresentation='standard',
                serverSelectionTimeoutMS=5000,
            )
            await self.client.admin.command('ping')
            db_name = _db_name_from_uri(self.uri)
            self.db = self.client[db_name]
            logger.success(f"MongoDB connection successful to database '{db_name}'.")
        except Exception as e:
            logger.critical(f"FATAL: Failed to connect to MongoDB: {e}")
            self.client = None
            self.db = None
            raise ConnectionError(f"MongoDB connection failed: {e}") from e

    async def disconnect(self):
        """Closes the MongoDB connection."""
        if self.client is not None:
            logger.info("Closing MongoDB connection...")
            try:
                self.client.close()
                logger.info("MongoDB connection closed.")
            finally:
                self.client = None
                self.db = None

    def get_db(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            logger.critical("Attempted to get MongoDB instance, but it's not available.")
            raise RuntimeError("MongoDB database is not connected or initialized.")
        return cast(AsyncIOMotorDatabase, self.db)

mongo_manager = MongoDbContext()

# --- Redis ---
class RedisContext(AbstractAsyncContextManager):
    client: Optional[redis.Redis] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self):
        """Connects to Redis. Falha aqui não derruba a API (só o healthcheck reporta)."""
        if self.client:
            return
        logger.info("Connecting to Redis...")
        try:
            pool = redis.ConnectionPool.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                max_connections=20,
            )
            self.client = redis.Redis(connection_pool=pool)
            await self.client.ping()
            logger.success("Redis connection successful.")
        except Exception as e:
            logger.error(f"Could not connect to Redis: {e}")
            self.client = None

    async def disconnect(self):
        if self.client:
            logger.info("Closing Redis connection pool...")
            try:
                await self.client.aclose()
                await self.client.connection_pool.disconnect()
            except Exception as e:
                logger.error(f"Error closing Redis connection pool: {e}")
            finally:
                self.client = None

    def get_client(self) -> redis.Redis:
        if self.client is None:
            raise RuntimeError("Redis client is not connected or initialized.")
        return cast(redis.Redis, self.client)

redis_manager = RedisContext()

# --- Dependências FastAPI ---

async def get_database() -> AsyncIOMotorDatabase:
    """FastAPI dependency to get a MongoDB database instance."""
    try:
        return mongo_manager.get_db()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Database connection not available: {e}")

async def get_redis_client() -> Optional[redis.Redis]:
    """Retorna None quando Redis está fora; o healthcheck trata como erro."""
    try:
        return redis_manager.get_client()
    except RuntimeError:
        return None
