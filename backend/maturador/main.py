# maturador/main.py

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from maturador.core.config import settings
from maturador.core.database import mongo_manager, redis_manager
from maturador.core.logging_config import setup_logging, add_trace_id_middleware, trace_id_var
from maturador.api.v1 import api_router
from maturador.modules.users.repository import UserRepository
from maturador.modules.integrations.repository import EvolutionSettingsRepository
from maturador.modules.connections.repository import ConnectionRepository
from maturador.modules.ai.repository import AIConfigRepository, BasePromptRepository
from maturador.modules.prompts.repository import PromptRepository
from maturador.modules.maturador.repository import MaturadorRepository
from maturador.modules.monitoring.repository import ChipMonitoringRepository, ChipHistoryRepository, AlertRepository

INDEXED_REPOSITORIES = (
    UserRepository,
    EvolutionSettingsRepository,
    ConnectionRepository,
    AIConfigRepository,
    BasePromptRepository,
    PromptRepository,
    MaturadorRepository,
    ChipMonitoringRepository,
    ChipHistoryRepository,
    AlertRepository,
)

async def create_all_indexes(db) -> None:
    await asyncio.gather(*(repo_cls(db).create_indexes() for repo_cls in INDEXED_REPOSITORIES))

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    await mongo_manager.connect()
    await redis_manager.connect()
    await create_all_indexes(mongo_manager.get_db())
    yield
    logger.info("Shutting down...")
    await asyncio.gather(mongo_manager.disconnect(), redis_manager.disconnect())

async def generic_exception_handler(request: Request, exc: Exception):
    logger.bind(trace_id=trace_id_var.get()).exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
        exception_handlers={Exception: generic_exception_handler},
    )

    app.middleware("http")(add_trace_id_middleware)

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/", tags=["Health Check"], include_in_schema=False)
    async def read_root():
        return {"status": "ok", "project": settings.PROJECT_NAME, "timestamp": datetime.now(timezone.utc)}

    return app

app = create_app()
