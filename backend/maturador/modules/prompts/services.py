# maturador/modules/prompts/services.py
from typing import List, Optional

from bson import ObjectId
from fastapi import HTTPException, status
from loguru import logger

from .repository import PromptRepository
from .models import PromptInDB, PromptAPI, PromptCreateAPI, PromptUpdateAPI

class PromptService:
    """Biblioteca de prompts do usuário; no máximo um é global."""

    def to_api(self, prompt: PromptInDB) -> PromptAPI:
        return PromptAPI(id=str(prompt.id), **prompt.model_dump(exclude={"id", "usuario_id"}))

    async def get_owned(self, usuario_id: ObjectId, prompt_id: str, repo: PromptRepository) -> PromptInDB:
        prompt = await repo.get_owned(prompt_id, usuario_id)
        if not prompt:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")
        return prompt

    async def list_prompts(self, usuario_id: ObjectId, repo: PromptRepository, category: Optional[str] = None) -> List[PromptAPI]:
        return [self.to_api(p) for p in await repo.list_for_user(usuario_id, category)]

    async def create_prompt(self, usuario_id: ObjectId, payload: PromptCreateAPI, repo: PromptRepository) -> PromptInDB:
        if payload.is_global:
            await repo.clear_global(usuario_id)
        prompt = PromptInDB(usuario_id=usuario_id, is_active=True, **payload.model_dump())
        created = await repo.create(prompt.model_dump(exclude={"id"}))
        logger.bind(service="PromptService", usuario_id=str(usuario_id)).info(f"Prompt '{created.name}' created (global={created.is_global}).")
        return created

    async def update_prompt(self, usuario_id: ObjectId, prompt_id: str, payload: PromptUpdateAPI, repo: PromptRepository) -> PromptInDB:
        prompt = await self.get_owned(usuario_id, prompt_id, repo)
        changes = payload.model_dump(exclude_none=True)
        if changes.get("is_global"):
            await repo.clear_global(usuario_id, except_id=prompt.id)
        updated = await repo.update(prompt.id, changes)
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")
        return updated

    async def toggle_active(self, usuario_id: ObjectId, prompt_id: str, repo: PromptRepository) -> PromptInDB:
        prompt = await self.get_owned(usuario_id, prompt_id, repo)
        return await repo.update(prompt.id, {"is_active": not prompt.is_active}) or prompt

    async def set_global(self, usuario_id: ObjectId, prompt_id: str, repo: PromptRepository) -> PromptInDB:
        prompt = await self.get_owned(usuario_id, prompt_id, repo)
        await repo.clear_global(usuario_id, except_id=prompt.id)
        return await repo.update(prompt.id, {"is_global": True}) or prompt

    async def delete_prompt(self, usuario_id: ObjectId, prompt_id: str, repo: PromptRepository) -> None:
        prompt = await self.get_owned(usuario_id, prompt_id, repo)
        await repo.delete(prompt.id)

async def get_prompt_service() -> PromptService:
    return PromptService()
