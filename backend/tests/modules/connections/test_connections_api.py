# tests/modules/connections/test_connections_api.py
import json
import re

import httpx
import pytest
from httpx import AsyncClient
from fastapi import status

from maturador.modules.connections.services import (
    ConnectionService, get_connection_service, sanitize_instance_name, build_instance_name,
)
from maturador.modules.maturador.repository import MaturadorRepository
from maturador.modules.monitoring.repository import ChipMonitoringRepository

pytestmark = pytest.mark.asyncio

def use_transport(app, handler):
    service = ConnectionService(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_connection_service] = lambda: service

def evolution_ok(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/instance/create":
        return httpx.Response(201, json={"instance": json.loads(request.content)})
    if request.url.path.startswith("/instance/connect/"):
        return httpx.Response(200, json={"base64": "data:image/png;base64,QR=="})
    if request.url.path == "/instance/fetchInstances":
        name = request.url.params["instanceName"]
        return httpx.Response(200, json=[{"instanceName": name, "owner": "5511987654321", "state": "open", "profileName": "x"}])
    return httpx.Response(404)

async def create_plain(client: AsyncClient, nome: str = "Chip A") -> dict:
    response = await client.post("/api/v1/connections/", json={"nome": nome, "create_instance": False})
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()

async def test_sanitize_and_instance_name():
    assert sanitize_instance_name("Chip Vendas #1!") == "chip_vendas_1"
    assert sanitize_instance_name("***") == "connection"
    assert build_instance_name("Meu Chip", now_ms=1718000123456) == "ox_meu_chip_123456"

async def test_create_without_instance(authenticated_client: AsyncClient):
    body = await create_plain(authenticated_client, "Chip Local")
    assert body["nome"] == "Chip Local"
    assert body["status"] == "ativo"
    assert body["config"]["status"] == "desconectado"
    assert body["config"]["telefone"] is None
    assert body["config"]["aiModel"] == "ChatGPT"

async def test_chip_limit_is_enforced(test_client: AsyncClient, user_factory):
    _, headers = await user_factory("limit@oxmaturador.com", chips_limite=1)
    first = await test_client.post("/api/v1/connections/", json={"nome": "A", "create_instance": False}, headers=headers)
    assert first.status_code == status.HTTP_201_CREATED

    second = await test_client.post("/api/v1/connections/", json={"nome": "B", "create_instance": False}, headers=headers)
    assert second.status_code == status.HTTP_403_FORBIDDEN
    assert second.json()["detail"] == "Chip limit reached"

async def test_create_instance_requires_evolution_settings(authenticated_client: AsyncClient):
    response = await authenticated_client.post("/api/v1/connections/", json={"nome": "Chip"})
    assert response.status_code == status.HTTP_409_CONFLICT

    await authenticated_client.put("/api/v1/integrations/evolution", json={"endpoint": "evo.test"})
    untested = await authenticated_client.post("/api/v1/connections/", json={"nome": "Chip"})
    assert untested.status_code == status.HTTP_409_CONFLICT
    assert "tested" in untested.json()["detail"]

async def test_create_with_evolution_instance(app, authenticated_client: AsyncClient, evolution_ready):
    use_transport(app, evolution_ok)
    response = await authenticated_client.post("/api/v1/connections/", json={"nome": "Chip Vendas", "descricao": "vendas"})

    assert response.status_code == status.HTTP_201_CREATED
    config = response.json()["config"]
    assert config["status"] == "aguardando_qr"
    assert config["descricao"] == "vendas"
    assert re.fullmatch(r"ox_chip_vendas_\d{6}", config["evolutionInstance"])
    assert config["evolutionConfig"] == {"endpoint": "https://evo.test", "instanceName": config["evolutionInstance"]}

async def test_evolution_failure_is_bad_gateway_with_attempts(app, authenticated_client: AsyncClient, evolution_ready):
    use_transport(app, lambda request: httpx.Response(500, text="boom"))
    response = await authenticated_client.post("/api/v1/connections/", json={"nome": "Chip"})

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    detail = response.json()["detail"]
    assert "Attempt statuses: 500" in detail["message"]
    assert detail["tried"][0]["status"] == 500

    listing = await authenticated_client.get("/api/v1/connections/")
    assert listing.json() == []

async def test_list_is_newest_first_and_scoped(test_client: AsyncClient, authenticated_client: AsyncClient, user_factory):
    await create_plain(authenticated_client, "Primeiro")
    await create_plain(authenticated_client, "Segundo")
    _, other_headers = await user_factory("other@oxmaturador.com")
    await test_client.post("/api/v1/connections/", json={"nome": "Alheio", "create_instance": False}, headers=other_headers)

    response = await authenticated_client.get("/api/v1/connections/")
    assert [c["nome"] for c in response.json()] == ["Segundo", "Primeiro"]

async def test_other_users_connection_is_not_found(test_client: AsyncClient, authenticated_client: AsyncClient, user_factory):
    mine = await create_plain(authenticated_client)
    _, other_headers = await user_factory("intruder@oxmaturador.com")

    for method, suffix in (("GET", ""), ("DELETE", ""), ("POST", "/refresh"), ("GET", "/qrcode")):
        response = await test_client.request(method, f"/api/v1/connections/{mine['id']}{suffix}", headers=other_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    missing = await authenticated_client.get("/api/v1/connections/not-an-object-id")
    assert missing.status_code == status.HTTP_404_NOT_FOUND

async def test_update_connection(authenticated_client: AsyncClient):
    conn = await create_plain(authenticated_client)
    response = await authenticated_client.patch(
        f"/api/v1/connections/{conn['id']}", json={"nome": "Renomeado", "status": "inativo", "descricao": "nova"}
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["nome"] == "Renomeado"
    assert body["status"] == "inativo"
    assert body["config"]["descricao"] == "nova"

async def test_delete_cascades_to_pairs_and_monitoring(authenticated_client: AsyncClient, db_client, test_user):
    a = await create_plain(authenticated_client, "A")
    b = await create_plain(authenticated_client, "B")
    await authenticated_client.post("/api/v1/maturador/pairs", json={"chip1": a["id"], "chip2": b["id"]})
    await authenticated_client.post(f"/api/v1/monitoring/{a['id']}/init")

    response = await authenticated_client.delete(f"/api/v1/connections/{a['id']}")
    assert response.status_code == status.HTTP_204_NO_CONTENT

    config = await MaturadorRepository(db_client).get_or_create(test_user.id)
    assert config.pairs == []
    assert await ChipMonitoringRepository(db_client).get_for_chip(test_user.id, a["id"]) is None
    assert (await authenticated_client.get(f"/api/v1/connections/{a['id']}")).status_code == status.HTTP_404_NOT_FOUND

async def test_instance_endpoint_creates_instance_and_returns_qr(app, authenticated_client: AsyncClient, evolution_ready):
    conn = await create_plain(authenticated_client)
    use_transport(app, evolution_ok)

    response = await authenticated_client.post(f"/api/v1/connections/{conn['id']}/instance")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["instance_name"] == f"ox_connection_{conn['id'][:8]}"
    assert body["qr_code"] == "data:image/png;base64,QR=="
    assert body["status"] == "connecting"

    stored = (await authenticated_client.get(f"/api/v1/connections/{conn['id']}")).json()
    assert stored["config"]["status"] == "aguardando_qr"
    assert stored["config"]["evolutionInstance"] == body["instance_name"]

async def test_instance_endpoint_tolerates_missing_qr(app, authenticated_client: AsyncClient, evolution_ready):
    conn = await create_plain(authenticated_client)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/instance/create":
            return httpx.Response(201, json={})
        return httpx.Response(404)

    use_transport(app, handler)
    response = await authenticated_client.post(f"/api/v1/connections/{conn['id']}/instance")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["qr_code"] == ""

async def test_qrcode_without_instance_creates_one(app, authenticated_client: AsyncClient, evolution_ready):
    conn = await create_plain(authenticated_client)
    use_transport(app, evolution_ok)

    response = await authenticated_client.get(f"/api/v1/connections/{conn['id']}/qrcode")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["instance_name"] == f"ox_connection_{conn['id'][:8]}"

async def test_qrcode_failure_is_bad_gateway(app, authenticated_client: AsyncClient, evolution_ready):
    use_transport(app, evolution_ok)
    conn = (await authenticated_client.post("/api/v1/connections/", json={"nome": "Chip"})).json()

    use_transport(app, lambda request: httpx.Response(503))
    response = await authenticated_client.get(f"/api/v1/connections/{conn['id']}/qrcode")

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert response.json()["detail"]["tried"]

async def test_refresh_pulls_instance_data(app, authenticated_client: AsyncClient, evolution_ready):
    use_transport(app, evolution_ok)
    conn = (await authenticated_client.post("/api/v1/connections/", json={"nome": "Chip"})).json()

    response = await authenticated_client.post(f"/api/v1/connections/{conn['id']}/refresh")

    assert response.status_code == status.HTTP_200_OK
    config = response.json()["config"]
    assert config["phoneNumber"] == "5511987654321"
    assert config["telefone"] == "5511987654321"
    assert config["connectionState"] == "open"
    assert config["status"] == "conectado"

    active = await authenticated_client.get("/api/v1/connections/active")
    assert [c["id"] for c in active.json()] == [conn["id"]]

async def test_refresh_without_instance_conflicts(authenticated_client: AsyncClient):
    conn = await create_plain(authenticated_client)
    response = await authenticated_client.post(f"/api/v1/connections/{conn['id']}/refresh")
    assert response.status_code == status.HTTP_409_CONFLICT

async def test_behavior_is_validated_and_saved(authenticated_client: AsyncClient):
    conn = await create_plain(authenticated_client)
    url = f"/api/v1/connections/{conn['id']}/behavior"

    invalid = await authenticated_client.put(url, json={"temperature": 2.5})
    assert invalid.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    invalid = await authenticated_client.put(url, json={"maxTokens": 0})
    assert invalid.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = await authenticated_client.put(url, json={"personality": "Direto", "temperature": 1.2, "isBehaviorActive": True})
    assert response.status_code == status.HTTP_200_OK
    behavior = response.json()["config"]["behavior"]
    assert behavior["personality"] == "Direto"
    assert behavior["temperature"] == 1.2
    assert behavior["maxConversationsPerDay"] == 100

async def test_refresh_accepts_numeric_phone(app, authenticated_client: AsyncClient, evolution_ready):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/instance/create":
            return httpx.Response(201, json={})
        if request.url.path == "/instance/fetchInstances":
            return httpx.Response(200, json={"instance": {"state": "open", "number": 5511999990000}})
        return httpx.Response(404)

    use_transport(app, handler)
    conn = (await authenticated_client.post("/api/v1/connections/", json={"nome": "Chip"})).json()

    response = await authenticated_client.post(f"/api/v1/connections/{conn['id']}/refresh")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["config"]["telefone"] == "5511999990000"
    assert response.json()["config"]["status"] == "conectado"
