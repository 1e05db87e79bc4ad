# maturador/api/endpoints/status.py
import asyncio
import time as process_time
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Literal

from fastapi import APIRouter, Depends, status as http_status, Response
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field
from redis.asyncio import Redis
from celery.exceptions import OperationalError as CeleryOperationalError

from maturador.core.logging_config import trace_id_var
from maturador.core.database import mongo_manager, get_redis_client
from maturador.worker.celery_app import celery_app

class ComponentStatus(BaseModel):
    status: Literal["ok", "error", "unavailable"] = "ok"
    message: Optional[str] = None

class HealthCheckResponse(BaseModel):
    overall_status: Literal["ok", "error"] = "ok"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uptime_seconds: float = Field(..., description="Process uptime in seconds")
    components: Dict[str, ComponentStatus]

PROCESS_START_TIME = process_time.monotonic()

router = APIRouter()

async def get_optional_database() -> Optional[AsyncIOMotorDatabase]:
    """Diferente de get_database: o healthcheck precisa reportar o banco fora, não falhar com 503 antes."""
    return mongo_manager.db

def ping_workers() -> ComponentStatus:
    """Ping síncrono nos workers Celery (bloqueante; rodar fora do event loop)."""
    try:
        ping_results = celery_app.control.inspect(timeout=1.5).ping()
    except CeleryOperationalError as e:
        logger.error(f"Celery broker connection error during ping: {e}")
        return ComponentStatus(status="unavailable", message="Broker connection error")
    except Exception as e:
        logger.error(f"Celery worker check failed unexpectedly: {e}")
        return ComponentStatus(status="unavailable", message="Ping check error")
    if ping_results:
        return ComponentStatus(status="ok", message=f"{len(ping_results)} worker(s) responded.")
    return ComponentStatus(status="unavailable", message="No workers responded to ping.")

@router.get(
    "/healthcheck",
    response_model=HealthCheckResponse,
    tags=["Status & Health"],
    summary="Application Health and Component Status Check"
)
async def get_application_health(
    db: Optional[AsyncIOMotorDatabase] = Depends(get_optional_database),
    redis: Optional[Redis] = Depends(get_redis_client)
):
    trace_id = trace_id_var.get() or f"health_{uuid.uuid4().hex[:8]}"
    log = logger.bind(trace_id=trace_id, api_endpoint="/healthcheck GET")
    log.info("Performing application health check...")

    component_statuses: Dict[str, ComponentStatus] = {}
    critical_ok = True

    if db is not None:
        try:
            await db.command('ping')
            component_statuses["database_mongodb"] = ComponentStatus(status="ok")
        except Exception as e:
            err_msg = f"MongoDB connection check failed: {e}"
            log.error(err_msg)
            component_statuses["database_mongodb"] = ComponentStatus(status="error", message=err_msg)
            critical_ok = False
    else:
        log.error("MongoDB connection not available.")
        component_statuses["database_mongodb"] = ComponentStatus(status="error", message="DB Client not available")
        critical_ok = False

    if redis is not None:
        try:
            await redis.ping()
            component_statuses["cache_broker_redis"] = ComponentStatus(status="ok")
        except Exception as e:
            err_msg = f"Redis connection check failed: {e}"
            log.error(err_msg)
            component_statuses["cache_broker_redis"] = ComponentStatus(status="error", message=err_msg)
            critical_ok = False
    else:
        log.error("Redis connection not available.")
        component_statuses["cache_broker_redis"] = ComponentStatus(status="error", message="Redis Client not available")
        critical_ok = False

    # Sem worker o maturador só não avança; a API continua saudável
    component_statuses["celery_workers"] = await asyncio.to_thread(ping_workers)

    overall_status: Literal["ok", "error"] = "ok" if critical_ok else "error"
    response_payload = HealthCheckResponse(
        overall_status=overall_status,
        uptime_seconds=process_time.monotonic() - PROCESS_START_TIME,
        components=component_statuses
    )
    status_code = http_status.HTTP_200_OK if critical_ok else http_status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(
        content=response_payload.model_dump_json(exclude_none=True),
        status_code=status_code,
        media_type="application/json"
    )
