# tests/modules/ai/test_ai_api.py
import httpx
import pytest
from httpx import AsyncClient
from fastapi import status

from maturador.modules.ai.services import AIService, get_ai_service, mask_api_key

pytestmark = pytest.mark.asyncio

URL = "/api/v1/ai"

def use_transport(app, handler):
    service = AIService(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_ai_service] = lambda: service

async def create_config(client: AsyncClient, **overrides) -> dict:
    payload = {"name": "OpenAI principal", "provider": "openai", "api_key": "sk-live-1234567890", "model": "gpt-4o-mini"}
    payload.update(overrides)
    response = await client.post(f"{URL}/configs", json=payload)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()

async def test_mask_api_key():
    assert mask_api_key("sk-live-1234567890") == "sk-...7890"
    assert mask_api_key("short") == "****"
    assert mask_api_key("12345678") == "****"

async def test_create_config_masks_key_and_sets_priority(authenticated_client: AsyncClient):
    first = await create_config(authenticated_client)
    second = await create_config(authenticated_client, name="Claude", provider="anthropic", api_key="sk-ant-abcdefghij")

    assert first["priority"] == 1
    assert second["priority"] == 2
    assert first["status"] == "inactive"
    assert first["api_key_masked"] == "sk-...7890"
    assert "api_key" not in first

    listing = await authenticated_client.get(f"{URL}/configs")
    assert [c["name"] for c in listing.json()] == ["OpenAI principal", "Claude"]

async def test_update_key_resets_status(app, authenticated_client: AsyncClient):
    config = await create_config(authenticated_client)
    use_transport(app, lambda request: httpx.Response(200, json={"data": []}))
    tested = await authenticated_client.post(f"{URL}/configs/{config['id']}/test")
    assert tested.json()["config"]["status"] == "active"

    renamed = await authenticated_client.patch(f"{URL}/configs/{config['id']}", json={"description": "prod"})
    assert renamed.json()["status"] == "active"

    rekeyed = await authenticated_client.patch(f"{URL}/configs/{config['id']}", json={"api_key": "sk-new-0987654321"})
    assert rekeyed.json()["status"] == "inactive"
    assert rekeyed.json()["api_key_masked"] == "sk-...4321"

async def test_config_test_uses_stored_key(app, authenticated_client: AsyncClient):
    config = await create_config(authenticated_client)
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(401)

    use_transport(app, handler)
    response = await authenticated_client.post(f"{URL}/configs/{config['id']}/test")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "API error: 401"
    assert body["config"]["status"] == "error"
    assert body["config"]["last_test_message"] == "API error: 401"
    assert seen["auth"] == "Bearer sk-live-1234567890"

async def test_other_provider_cannot_be_tested(authenticated_client: AsyncClient):
    config = await create_config(authenticated_client, provider="other")
    response = await authenticated_client.post(f"{URL}/configs/{config['id']}/test")
    assert response.json()["success"] is False
    assert response.json()["message"] == "Test not implemented"

async def test_delete_config_and_ownership(test_client: AsyncClient, authenticated_client: AsyncClient, user_factory):
    config = await create_config(authenticated_client)
    _, other_headers = await user_factory("other@oxmaturador.com")

    foreign = await test_client.delete(f"{URL}/configs/{config['id']}", headers=other_headers)
    assert foreign.status_code == status.HTTP_404_NOT_FOUND

    deleted = await authenticated_client.delete(f"{URL}/configs/{config['id']}")
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert (await authenticated_client.get(f"{URL}/configs")).json() == []

async def test_invalid_temperature_is_rejected(authenticated_client: AsyncClient):
    response = await authenticated_client.post(
        f"{URL}/configs", json={"name": "x", "api_key": "k", "model": "m", "temperature": 3}
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

async def test_only_one_base_prompt_is_active(authenticated_client: AsyncClient):
    first = (await authenticated_client.post(f"{URL}/base-prompts", json={"name": "Padrão", "content": "Seja cordial."})).json()
    second = (await authenticated_client.post(f"{URL}/base-prompts", json={"name": "Vendas", "content": "Foque em vendas."})).json()
    assert second["is_active"] is True

    prompts = {p["id"]: p for p in (await authenticated_client.get(f"{URL}/base-prompts")).json()}
    assert prompts[first["id"]]["is_active"] is False

    activated = await authenticated_client.post(f"{URL}/base-prompts/{first['id']}/activate")
    assert activated.json()["is_active"] is True
    prompts = {p["id"]: p for p in (await authenticated_client.get(f"{URL}/base-prompts")).json()}
    assert prompts[second["id"]]["is_active"] is False

    deleted = await authenticated_client.delete(f"{URL}/base-prompts/{second['id']}")
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    missing = await authenticated_client.post(f"{URL}/base-prompts/{second['id']}/activate")
    assert missing.status_code == status.HTTP_404_NOT_FOUND
