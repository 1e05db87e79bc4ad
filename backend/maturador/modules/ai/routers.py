# maturador/modules/ai/routers.py
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Response, status

from maturador.core.security import CurrentUser
from .repository import AIConfigRepository, BasePromptRepository, get_ai_config_repository, get_base_prompt_repository
from .services import AIService, get_ai_service
from .models import (
    AIConfigAPI, AIConfigCreateAPI, AIConfigUpdateAPI, AIConfigTestResultAPI, BasePromptAPI, BasePromptCreateAPI,
)

ai_router = APIRouter()

# --- Configurações de IA ---
@ai_router.get("/configs", response_model=List[AIConfigAPI], summary="List AI provider configs", tags=["AI"])
async def list_configs(
    current_user: CurrentUser,
    service: AIService = Depends(get_ai_service),
    repo: AIConfigRepository = Depends(get_ai_config_repository),
):
    return await service.list_configs(current_user.id, repo)

@ai_router.post("/configs", response_model=AIConfigAPI, status_code=status.HTTP_201_CREATED, summary="Add an AI provider config", tags=["AI"])
async def create_config(
    current_user: CurrentUser,
    payload: AIConfigCreateAPI = Body(...),
    service: AIService = Depends(get_ai_service),
    repo: AIConfigRepository = Depends(get_ai_config_repository),
):
    return service.config_to_api(await service.create_config(current_user.id, payload, repo))

@ai_router.patch("/configs/{config_id}", response_model=AIConfigAPI, summary="Update an AI provider config", tags=["AI"])
async def update_config(
    current_user: CurrentUser,
    config_id: str = Path(...),
    payload: AIConfigUpdateAPI = Body(...),
    service: AIService = Depends(get_ai_service),
    repo: AIConfigRepository = Depends(get_ai_config_repository),
):
    return service.config_to_api(await service.update_config(current_user.id, config_id, payload, repo))

@ai_router.delete("/configs/{config_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an AI provider config", tags=["AI"])
async def delete_config(
    current_user: CurrentUser,
    config_id: str = Path(...),
    service: AIService = Depends(get_ai_service),
    repo: AIConfigRepository = Depends(get_ai_config_repository),
):
    await service.delete_config(current_user.id, config_id, repo)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@ai_router.post("/configs/{config_id}/test", response_model=AIConfigTestResultAPI, summary="Probe the provider with this config", tags=["AI"])
async def test_config(
    current_user: CurrentUser,
    config_id: str = Path(...),
    service: AIService = Depends(get_ai_service),
    repo: AIConfigRepository = Depends(get_ai_config_repository),
):
    return await service.test_config(current_user.id, config_id, repo)

# --- Prompts base ---
@ai_router.get("/base-prompts", response_model=List[BasePromptAPI], summary="List base prompts", tags=["AI"])
async def list_base_prompts(
    current_user: CurrentUser,
    service: AIService = Depends(get_ai_service),
    repo: BasePromptRepository = Depends(get_base_prompt_repository),
):
    return await service.list_base_prompts(current_user.id, repo)

@ai_router.post("/base-prompts", response_model=BasePromptAPI, status_code=status.HTTP_201_CREATED, summary="Create (and activate) a base prompt", tags=["AI"])
async def create_base_prompt(
    current_user: CurrentUser,
    payload: BasePromptCreateAPI = Body(...),
    service: AIService = Depends(get_ai_service),
    repo: BasePromptRepository = Depends(get_base_prompt_repository),
):
    return service.prompt_to_api(await service.create_base_prompt(current_user.id, payload, repo))

@ai_router.post("/base-prompts/{prompt_id}/activate", response_model=BasePromptAPI, summary="Make this the active base prompt", tags=["AI"])
async def activate_base_prompt(
    current_user: CurrentUser,
    prompt_id: str = Path(...),
    service: AIService = Depends(get_ai_service),
    repo: BasePromptRepository = Depends(get_base_prompt_repository),
):
    return service.prompt_to_api(await service.activate_base_prompt(current_user.id, prompt_id, repo))

@ai_router.delete("/base-prompts/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a base prompt", tags=["AI"])
async def delete_base_prompt(
    current_user: CurrentUser,
    prompt_id: str = Path(...),
    service: AIService = Depends(get_ai_service),
    repo: BasePromptRepository = Depends(get_base_prompt_repository),
):
    await service.delete_base_prompt(current_user.id, prompt_id, repo)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
