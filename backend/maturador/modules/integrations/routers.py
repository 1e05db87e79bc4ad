# maturador/modules/integrations/routers.py
from fastapi import APIRouter, Body, Depends
from loguru import logger

from maturador.core.security import CurrentUser
from maturador.models.evolution import ApiTestResult
from .repository import EvolutionSettingsRepository, get_evolution_settings_repository
from .services import IntegrationService, get_integration_service
from .models import EvolutionSettingsAPI, EvolutionSettingsUpdateAPI, EvolutionTestResultAPI, ApiTestRequest

integrations_router = APIRouter()

@integrations_router.get("/evolution", response_model=EvolutionSettingsAPI, summary="Get Evolution API settings", tags=["Integrations"])
async def get_evolution_settings(
    current_user: CurrentUser,
    service: IntegrationService = Depends(get_integration_service),
    repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    return service.to_api(await service.get_evolution_settings(current_user.id, repo))

@integrations_router.put("/evolution", response_model=EvolutionSettingsAPI, summary="Save Evolution API endpoint", tags=["Integrations"])
async def save_evolution_settings(
    current_user: CurrentUser,
    payload: EvolutionSettingsUpdateAPI = Body(...),
    service: IntegrationService = Depends(get_integration_service),
    repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    saved = await service.save_evolution_endpoint(current_user.id, payload.endpoint, repo)
    return service.to_api(saved)

@integrations_router.post("/evolution/test", response_model=EvolutionTestResultAPI, summary="Test the saved Evolution API endpoint", tags=["Integrations"])
async def test_evolution_settings(
    current_user: CurrentUser,
    service: IntegrationService = Depends(get_integration_service),
    repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
):
    return await service.test_evolution(current_user.id, repo)

@integrations_router.post("/test", response_model=ApiTestResult, summary="Probe a provider with server-side keys", tags=["Integrations"])
async def test_api(
    current_user: CurrentUser,
    payload: ApiTestRequest = Body(...),
    service: IntegrationService = Depends(get_integration_service),
):
    logger.bind(user_id=str(current_user.id), api_type=payload.api_type).info("Provider test requested.")
    return await service.test_api(payload.api_type, payload.test_data)
