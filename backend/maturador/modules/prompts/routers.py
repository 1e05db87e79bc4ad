# maturador/modules/prompts/routers.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from maturador.core.security import CurrentUser
from .repository import PromptRepository, get_prompt_repository
from .services import PromptService, get_prompt_service
from .models import PromptAPI, PromptCreateAPI, PromptUpdateAPI, PROMPT_CATEGORIES

prompts_router = APIRouter()

@prompts_router.get("/", response_model=List[PromptAPI], summary="List prompts", tags=["Prompts"])
async def list_prompts(
    current_user: CurrentUser,
    category: Optional[PROMPT_CATEGORIES] = Query(None),
    service: PromptService = Depends(get_prompt_service),
    repo: PromptRepository = Depends(get_prompt_repository),
):
    return await service.list_prompts(current_user.id, repo, category)

@prompts_router.post("/", response_model=PromptAPI, status_code=status.HTTP_201_CREATED, summary="Create a prompt", tags=["Prompts"])
async def create_prompt(
    current_user: CurrentUser,
    payload: PromptCreateAPI = Body(...),
    service: PromptService = Depends(get_prompt_service),
    repo: PromptRepository = Depends(get_prompt_repository),
):
    return service.to_api(await service.create_prompt(current_user.id, payload, repo))

@prompts_router.patch("/{prompt_id}", response_model=PromptAPI, summary="Update a prompt", tags=["Prompts"])
async def update_prompt(
    current_user: CurrentUser,
    prompt_id: str = Path(...),
    payload: PromptUpdateAPI = Body(...),
    service: PromptService = Depends(get_prompt_service),
    repo: PromptRepository = Depends(get_prompt_repository),
):
    return service.to_api(await service.update_prompt(current_user.id, prompt_id, payload, repo))

@prompts_router.post("/{prompt_id}/toggle", response_model=PromptAPI, summary="Activate/deactivate a prompt", tags=["Prompts"])
async def toggle_prompt(
    current_user: CurrentUser,
    prompt_id: str = Path(...),
    service: PromptService = Depends(get_prompt_service),
    repo: PromptRepository = Depends(get_prompt_repository),
):
    return service.to_api(await service.toggle_active(current_user.id, prompt_id, repo))

@prompts_router.post("/{prompt_id}/global", response_model=PromptAPI, summary="Use this prompt as the global default", tags=["Prompts"])
async def set_global_prompt(
    current_user: CurrentUser,
    prompt_id: str = Path(...),
    service: PromptService = Depends(get_prompt_service),
    repo: PromptRepository = Depends(get_prompt_repository),
):
    return service.to_api(await service.set_global(current_user.id, prompt_id, repo))

@prompts_router.delete("/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a prompt", tags=["Prompts"])
async def delete_prompt(
    current_user: CurrentUser,
    prompt_id: str = Path(...),
    service: PromptService = Depends(get_prompt_service),
    repo: PromptRepository = Depends(get_prompt_repository),
):
    await service.delete_prompt(current_user.id, prompt_id, repo)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
