# maturador/modules/ai/services.py
from typing import Optional, List

import httpx
from bson import ObjectId
from fastapi import HTTPException, status
from loguru import logger

from maturador.services.provider_probe import probe_provider
from .repository import AIConfigRepository, BasePromptRepository
from .models import (
    AIConfigInDB, AIConfigAPI, AIConfigCreateAPI, AIConfigUpdateAPI, AIConfigTestResultAPI,
    BasePromptInDB, BasePromptAPI, BasePromptCreateAPI,
)

def mask_api_key(api_key: str) -> str:
    """'sk-abcdef...wxyz' -> 'sk-...wxyz'. Chaves curtas não mostram nada."""
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:3]}...{api_key[-4:]}"

class AIService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def config_to_api(self, config: AIConfigInDB) -> AIConfigAPI:
        return AIConfigAPI(
            api_key_masked=mask_api_key(config.api_key),
            id=str(config.id),
            **config.model_dump(exclude={"id", "usuario_id", "api_key"}),
        )

    def prompt_to_api(self, prompt: BasePromptInDB) -> BasePromptAPI:
        return BasePromptAPI(id=str(prompt.id), **prompt.model_dump(exclude={"id", "usuario_id"}))

    async def _get_config(self, usuario_id: ObjectId, config_id: str, repo: AIConfigRepository) -> AIConfigInDB:
        config = await repo.get_owned(config_id, usuario_id)
        if not config:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI config not found")
        return config

    # --- Configurações de provedores ---
    async def list_configs(self, usuario_id: ObjectId, repo: AIConfigRepository) -> List[AIConfigAPI]:
        return [self.config_to_api(c) for c in await repo.list_for_user(usuario_id)]

    async def create_config(self, usuario_id: ObjectId, payload: AIConfigCreateAPI, repo: AIConfigRepository) -> AIConfigInDB:
        priority = await repo.count_for_user(usuario_id) + 1
        config = AIConfigInDB(usuario_id=usuario_id, priority=priority, is_active=True, status="inactive", **payload.model_dump())
        created = await repo.create(config.model_dump(exclude={"id"}))
        logger.bind(service="AIService", usuario_id=str(usuario_id)).info(
            f"AI config '{created.name}' ({created.provider}) created with priority {priority}."
        )
        return created

    async def update_config(
        self, usuario_id: ObjectId, config_id: str, payload: AIConfigUpdateAPI, repo: AIConfigRepository
    ) -> AIConfigInDB:
        config = await self._get_config(usuario_id, config_id, repo)
        changes = payload.model_dump(exclude_none=True)
        if "api_key" in changes or "model" in changes:
            # chave/modelo novos precisam de novo teste
            changes["status"] = "inactive"
        updated = await repo.update(config.id, changes)
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI config not found")
        return updated

    async def delete_config(self, usuario_id: ObjectId, config_id: str, repo: AIConfigRepository) -> None:
        config = await self._get_config(usuario_id, config_id, repo)
        await repo.delete(config.id)

    async def test_config(self, usuario_id: ObjectId, config_id: str, repo: AIConfigRepository) -> AIConfigTestResultAPI:
        config = await self._get_config(usuario_id, config_id, repo)
        result = await probe_provider(config.provider, config.api_key, transport=self.transport)
        updated = await repo.update(config.id, {
            "status": "active" if result.success else "error",
            "last_test_message": result.message,
        })
        logger.bind(service="AIService", config_id=config_id).info(f"AI config test: {result.success} ({result.message})")
        return AIConfigTestResultAPI(success=result.success, message=result.message, config=self.config_to_api(updated or config))

    # --- Prompts base ---
    async def list_base_prompts(self, usuario_id: ObjectId, repo: BasePromptRepository) -> List[BasePromptAPI]:
        return [self.prompt_to_api(p) for p in await repo.list_for_user(usuario_id)]

    async def create_base_prompt(self, usuario_id: ObjectId, payload: BasePromptCreateAPI, repo: BasePromptRepository) -> BasePromptInDB:
        """O novo prompt base vira o único ativo."""
        await repo.deactivate_all(usuario_id)
        prompt = BasePromptInDB(usuario_id=usuario_id, name=payload.name.strip(), content=payload.content, is_active=True)
        return await repo.create(prompt.model_dump(exclude={"id"}))

    async def activate_base_prompt(self, usuario_id: ObjectId, prompt_id: str, repo: BasePromptRepository) -> BasePromptInDB:
        prompt = await repo.get_owned(prompt_id, usuario_id)
        if not prompt:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Base prompt not found")
        await repo.deactivate_all(usuario_id, except_id=prompt.id)
        updated = await repo.update(prompt.id, {"is_active": True})
        return updated or prompt

    async def delete_base_prompt(self, usuario_id: ObjectId, prompt_id: str, repo: BasePromptRepository) -> None:
        prompt = await repo.get_owned(prompt_id, usuario_id)
        if not prompt:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Base prompt not found")
        await repo.delete(prompt.id)

async def get_ai_service() -> AIService:
    return AIService()
