# maturador/api/v1.py
from fastapi import APIRouter

from maturador.api.endpoints import auth, status
from maturador.modules.users.routers import users_router
from maturador.modules.integrations.routers import integrations_router
from maturador.modules.connections.routers import connections_router
from maturador.modules.ai.routers import ai_router
from maturador.modules.prompts.routers import prompts_router
from maturador.modules.maturador.routers import maturador_router
from maturador.modules.monitoring.routers import monitoring_router
from maturador.modules.analytics.routers import analytics_router

api_router = APIRouter()

api_router.include_router(status.router)
api_router.include_router(auth.router, prefix="/auth")
api_router.include_router(users_router, prefix="/users")
api_router.include_router(integrations_router, prefix="/integrations")
api_router.include_router(connections_router, prefix="/connections")
api_router.include_router(ai_router, prefix="/ai")
api_router.include_router(prompts_router, prefix="/prompts")
api_router.include_router(maturador_router, prefix="/maturador")
api_router.include_router(monitoring_router, prefix="/monitoring")
api_router.include_router(analytics_router, prefix="/analytics")
