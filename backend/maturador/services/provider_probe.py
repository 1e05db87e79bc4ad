# maturador/services/provider_probe.py

from typing import Optional, Dict, Any, Literal

import httpx
from loguru import logger

from maturador.core.config import settings
from maturador.models.evolution import ApiTestResult
from maturador.services.evolution_client import EvolutionClient

API_TYPES = Literal["evolution", "openai", "anthropic", "google"]

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_PROBE_MODEL = "claude-3-haiku-20240307"
GOOGLE_MODELS_URL = "https://generativelanguage.googleapis.com/v1beta/models"

PROVIDER_LABELS = {
    "evolution": "Evolution API",
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "google": "Google AI",
}

def server_key_for(api_type: str) -> Optional[str]:
    return {
        "evolution": settings.EVOLUTION_API_KEY,
        "openai": settings.OPENAI_API_KEY,
        "anthropic": settings.ANTHROPIC_API_KEY,
        "google": settings.GOOGLE_API_KEY,
    }.get(api_type)

async def probe_provider(
    api_type: str,
    api_key: Optional[str],
    test_data: Optional[Dict[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ApiTestResult:
    """Faz uma chamada barata ao provedor só para validar chave e conectividade."""
    log = logger.bind(service="ProviderProbe", api_type=api_type)
    label = PROVIDER_LABELS.get(api_type)
    if label is None:
        return ApiTestResult(success=False, message="Test not implemented")
    if not api_key:
        return ApiTestResult(success=False, message=f"{label} key not configured")

    test_data = test_data or {}
    if api_type == "evolution":
        base_url = test_data.get("baseUrl") or test_data.get("endpoint")
        ok, message = await EvolutionClient(base_url, api_key=api_key, transport=transport).check_reachable()
        return ApiTestResult(success=ok, message=message)

    try:
        async with httpx.AsyncClient(timeout=settings.PROVIDER_HTTP_TIMEOUT, transport=transport) as client:
            if api_type == "openai":
                response = await client.get(
                    OPENAI_MODELS_URL,
                    headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
                )
            elif api_type == "anthropic":
                response = await client.post(
                    ANTHROPIC_MESSAGES_URL,
                    headers={"x-api-key": api_key, "Content-Type": "application/json", "anthropic-version": ANTHROPIC_VERSION},
                    json={"model": ANTHROPIC_PROBE_MODEL, "max_tokens": 10, "messages": [{"role": "user", "content": "Test"}]},
                )
            else:
                response = await client.get(GOOGLE_MODELS_URL, params={"key": api_key}, headers={"Content-Type": "application/json"})
    except httpx.RequestError as e:
        log.warning(f"Provider probe failed: {e}")
        return ApiTestResult(success=False, message=f"Connection error: {e}")

    log.info(f"Provider probe status: {response.status_code}")
    # Anthropic: 400 significa que a chave autenticou e só o payload mínimo foi recusado
    if response.is_success or (api_type == "anthropic" and response.status_code == 400):
        return ApiTestResult(success=True, message=f"{label} connection successful")
    return ApiTestResult(success=False, message=f"API error: {response.status_code}")
