# tests/modules/maturador/test_maturador_api.py
import pytest
from httpx import AsyncClient
from fastapi import status

pytestmark = pytest.mark.asyncio

URL = "/api/v1/maturador"

async def make_chips(client: AsyncClient, *names: str) -> list:
    ids = []
    for nome in names:
        response = await client.post("/api/v1/connections/", json={"nome": nome, "create_instance": False})
        ids.append(response.json()["id"])
    return ids

async def test_overview_starts_with_defaults(authenticated_client: AsyncClient):
    response = await authenticated_client.get(URL)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["is_running"] is False
    assert body["max_messages_per_session"] == 10
    assert body["use_base_prompt"] is True
    assert body["pairs"] == []
    assert body["stats"] == {"pairs": 0, "active": 0, "messages": 0}

async def test_update_settings(authenticated_client: AsyncClient):
    response = await authenticated_client.patch(f"{URL}/settings", json={"max_messages_per_session": 25, "use_base_prompt": False})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["max_messages_per_session"] == 25
    assert response.json()["use_base_prompt"] is False

    invalid = await authenticated_client.patch(f"{URL}/settings", json={"max_messages_per_session": 0})
    assert invalid.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

async def test_add_pair_with_names(authenticated_client: AsyncClient):
    a, b = await make_chips(authenticated_client, "Chip A", "Chip B")
    response = await authenticated_client.post(f"{URL}/pairs", json={"chip1": a, "chip2": b})

    assert response.status_code == status.HTTP_201_CREATED
    pair = response.json()["pairs"][0]
    assert pair["chip1_name"] == "Chip A"
    assert pair["chip2_name"] == "Chip B"
    assert pair["status"] == "stopped"
    assert pair["is_active"] is True
    assert pair["messages_exchanged"] == 0

async def test_add_pair_rejections(test_client: AsyncClient, authenticated_client: AsyncClient, user_factory):
    a, b = await make_chips(authenticated_client, "A", "B")

    same = await authenticated_client.post(f"{URL}/pairs", json={"chip1": a, "chip2": a})
    assert same.status_code == status.HTTP_400_BAD_REQUEST

    await authenticated_client.post(f"{URL}/pairs", json={"chip1": a, "chip2": b})
    reversed_dup = await authenticated_client.post(f"{URL}/pairs", json={"chip1": b, "chip2": a})
    assert reversed_dup.status_code == status.HTTP_409_CONFLICT

    _, other_headers = await user_factory("other@oxmaturador.com")
    foreign = await test_client.post(f"{URL}/pairs", json={"chip1": a, "chip2": b}, headers=other_headers)
    assert foreign.status_code == status.HTTP_404_NOT_FOUND

async def test_toggle_running_requires_active_pairs(authenticated_client: AsyncClient):
    empty = await authenticated_client.post(f"{URL}/toggle")
    assert empty.status_code == status.HTTP_400_BAD_REQUEST

    a, b = await make_chips(authenticated_client, "A", "B")
    pair_id = (await authenticated_client.post(f"{URL}/pairs", json={"chip1": a, "chip2": b})).json()["pairs"][0]["id"]
    await authenticated_client.post(f"{URL}/pairs/{pair_id}/toggle")

    inactive = await authenticated_client.post(f"{URL}/toggle")
    assert inactive.status_code == status.HTTP_400_BAD_REQUEST

async def test_start_and_stop(authenticated_client: AsyncClient):
    a, b, c = await make_chips(authenticated_client, "A", "B", "C")
    await authenticated_client.post(f"{URL}/pairs", json={"chip1": a, "chip2": b})
    second = (await authenticated_client.post(f"{URL}/pairs", json={"chip1": b, "chip2": c})).json()["pairs"][1]["id"]
    await authenticated_client.post(f"{URL}/pairs/{second}/toggle")

    started = (await authenticated_client.post(f"{URL}/toggle")).json()
    assert started["is_running"] is True
    assert [p["status"] for p in started["pairs"]] == ["running", "paused"]
    assert started["stats"]["active"] == 1

    stopped = (await authenticated_client.post(f"{URL}/toggle")).json()
    assert stopped["is_running"] is False
    assert {p["status"] for p in stopped["pairs"]} == {"stopped"}

async def test_toggle_and_remove_pair(authenticated_client: AsyncClient):
    a, b = await make_chips(authenticated_client, "A", "B")
    pair_id = (await authenticated_client.post(f"{URL}/pairs", json={"chip1": a, "chip2": b})).json()["pairs"][0]["id"]

    toggled = (await authenticated_client.post(f"{URL}/pairs/{pair_id}/toggle")).json()["pairs"][0]
    assert toggled["is_active"] is False
    assert toggled["status"] == "paused"
    assert toggled["last_activity"] is not None

    removed = await authenticated_client.delete(f"{URL}/pairs/{pair_id}")
    assert removed.status_code == status.HTTP_200_OK
    assert removed.json()["pairs"] == []

    missing = await authenticated_client.delete(f"{URL}/pairs/{pair_id}")
    assert missing.status_code == status.HTTP_404_NOT_FOUND
