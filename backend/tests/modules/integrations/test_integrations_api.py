# tests/modules/integrations/test_integrations_api.py
import httpx
import pytest
from httpx import AsyncClient
from fastapi import status

from maturador.modules.integrations.services import IntegrationService, get_integration_service

pytestmark = pytest.mark.asyncio

def use_transport(app, handler):
    service = IntegrationService(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_integration_service] = lambda: service

async def test_defaults_when_nothing_saved(authenticated_client: AsyncClient):
    response = await authenticated_client.get("/api/v1/integrations/evolution")
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["endpoint"] == ""
    assert body["status"] == "disconnected"
    assert body["api_key_configured"] is True

async def test_save_normalizes_endpoint_and_resets_status(authenticated_client: AsyncClient, evolution_ready):
    response = await authenticated_client.put("/api/v1/integrations/evolution", json={"endpoint": " evo.minha-empresa.com/ "})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["endpoint"] == "https://evo.minha-empresa.com"
    assert response.json()["status"] == "disconnected"

async def test_evolution_test_marks_connected(app, authenticated_client: AsyncClient):
    await authenticated_client.put("/api/v1/integrations/evolution", json={"endpoint": "evo.test"})

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == "https://evo.test/manager/findInstances"
        assert request.headers["apikey"] == "test-evolution-key"
        return httpx.Response(200, json=[])

    use_transport(app, handler)
    response = await authenticated_client.post("/api/v1/integrations/evolution/test")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["settings"]["status"] == "connected"
    assert body["settings"]["last_test"] is not None

async def test_evolution_test_failure_marks_error(app, authenticated_client: AsyncClient):
    await authenticated_client.put("/api/v1/integrations/evolution", json={"endpoint": "evo.test"})
    use_transport(app, lambda request: httpx.Response(401))

    response = await authenticated_client.post("/api/v1/integrations/evolution/test")

    body = response.json()
    assert body["success"] is False
    assert body["message"] == "API error: 401"
    assert body["settings"]["status"] == "error"

async def test_provider_probe_uses_server_keys(app, authenticated_client: AsyncClient):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer sk-test-openai"
        return httpx.Response(200, json={"data": []})

    use_transport(app, handler)
    response = await authenticated_client.post("/api/v1/integrations/test", json={"api_type": "openai"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "message": "OpenAI connection successful"}

async def test_provider_probe_rejects_unknown_type(authenticated_client: AsyncClient):
    response = await authenticated_client.post("/api/v1/integrations/test", json={"api_type": "ngrok"})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
