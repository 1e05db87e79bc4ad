# maturador/modules/integrations/services.py
from typing import Optional

import httpx
from bson import ObjectId
from loguru import logger

from maturador.core.config import settings
from maturador.core.repository import utcnow
from maturador.models.evolution import ApiTestResult
from maturador.services.evolution_client import EvolutionClient, normalize_base_url
from maturador.services.provider_probe import probe_provider, server_key_for
from .repository import EvolutionSettingsRepository
from .models import (
    EvolutionSettingsInDB, EvolutionSettingsUpdateInternal, EvolutionSettingsAPI, EvolutionTestResultAPI
)

class IntegrationService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        # transport injetável: testes usam httpx.MockTransport
        self.transport = transport

    def to_api(self, settings_db: Optional[EvolutionSettingsInDB]) -> EvolutionSettingsAPI:
        configured = bool(settings.EVOLUTION_API_KEY)
        if settings_db is None:
            return EvolutionSettingsAPI(api_key_configured=configured)
        return EvolutionSettingsAPI(
            endpoint=settings_db.endpoint,
            status=settings_db.status,
            last_test=settings_db.last_test,
            api_key_configured=configured,
        )

    def evolution_client(self, endpoint: str) -> EvolutionClient:
        return EvolutionClient(endpoint, transport=self.transport)

    async def get_evolution_settings(self, usuario_id: ObjectId, repo: EvolutionSettingsRepository) -> Optional[EvolutionSettingsInDB]:
        return await repo.get_for_user(usuario_id)

    async def save_evolution_endpoint(self, usuario_id: ObjectId, endpoint: str, repo: EvolutionSettingsRepository) -> EvolutionSettingsInDB:
        """Trocar o endpoint invalida o último teste."""
        normalized = normalize_base_url(endpoint)
        logger.bind(service="IntegrationService", usuario_id=str(usuario_id)).info(f"Saving Evolution endpoint: {normalized}")
        return await repo.upsert_for_user(
            usuario_id,
            EvolutionSettingsUpdateInternal(endpoint=normalized, status="disconnected"),
        )

    async def test_evolution(self, usuario_id: ObjectId, repo: EvolutionSettingsRepository) -> EvolutionTestResultAPI:
        log = logger.bind(service="IntegrationService", usuario_id=str(usuario_id))
        current = await repo.get_for_user(usuario_id)
        endpoint = current.endpoint if current else ""
        ok, message = await self.evolution_client(endpoint).check_reachable()
        saved = await repo.upsert_for_user(
            usuario_id,
            EvolutionSettingsUpdateInternal(status="connected" if ok else "error", last_test=utcnow()),
        )
        if ok:
            log.success("Evolution API connection verified.")
        else:
            log.warning(f"Evolution API test failed: {message}")
        return EvolutionTestResultAPI(success=ok, message=message, settings=self.to_api(saved))

    async def test_api(self, api_type: str, test_data: dict) -> ApiTestResult:
        """Teste de conectividade usando as chaves do servidor (nunca as do cliente)."""
        return await probe_provider(api_type, server_key_for(api_type), test_data, transport=self.transport)

async def get_integration_service() -> IntegrationService:
    return IntegrationService()
