# tests/services/test_evolution_client.py
import base64

import httpx
import pytest

from maturador.services.evolution_client import EvolutionClient, normalize_base_url, extract_qr_from_json

pytestmark = pytest.mark.asyncio

def make_client(handler) -> EvolutionClient:
    return EvolutionClient("evo.test/", api_key="evo-key", transport=httpx.MockTransport(handler))

async def test_normalize_base_url():
    assert normalize_base_url("  evo.example.com/ ") == "https://evo.example.com"
    assert normalize_base_url("http://10.0.0.5:8080") == "http://10.0.0.5:8080"
    assert normalize_base_url("HTTPS://Evo.io/") == "HTTPS://Evo.io"
    assert normalize_base_url(None) == ""

async def test_create_instance_stops_at_first_success():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        assert request.headers["apikey"] == "evo-key"
        if request.url.path == "/instance/create/ox_chip_123456":
            return httpx.Response(201, json={"instance": {"instanceName": "ox_chip_123456"}})
        return httpx.Response(404, text="not found")

    result = await make_client(handler).create_instance("ox_chip_123456")

    assert result.success is True
    assert result.endpoint_used == "https://evo.test/instance/create/ox_chip_123456"
    assert [a.status for a in result.tried] == [404, 201]
    assert len(seen) == 2

async def test_create_instance_reports_every_attempt_on_failure():
    result = await make_client(lambda request: httpx.Response(500, text="x" * 500)).create_instance("ox_a_1")

    assert result.success is False
    assert "all attempts failed" in result.message
    assert len(result.tried) > 5
    assert all(a.status == 500 for a in result.tried)
    assert all(len(a.body_snippet) == 200 for a in result.tried)

async def test_create_instance_records_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await make_client(handler).create_instance("ox_a_1")

    assert result.success is False
    assert result.tried[0].status == 0
    assert "connection refused" in result.tried[0].error

async def test_missing_api_key_fails_without_io():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = EvolutionClient("evo.test", api_key="", transport=httpx.MockTransport(handler))
    result = await client.create_instance("ox_a_1")

    assert result.success is False
    assert result.message == "EVOLUTION_API_KEY is not configured"
    assert result.tried == []

async def test_empty_instance_name_fails_without_io():
    result = await make_client(lambda request: httpx.Response(200)).get_qr("")
    assert result.success is False
    assert result.tried == []

async def test_get_qr_image_response_becomes_data_url():
    png = b"\x89PNG fake bytes"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=png, headers={"content-type": "image/png"})

    result = await make_client(handler).get_qr("ox_a_1")

    assert result.success is True
    assert result.qr_code == "data:image/png;base64," + base64.b64encode(png).decode()
    assert result.tried[0].body_snippet == ""

async def test_get_qr_falls_back_to_post_and_prefixes_bare_base64():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/instance/connect/ox_a_1":
            return httpx.Response(200, json={"base64": "iVBORw0KGgo="})
        return httpx.Response(405)

    result = await make_client(handler).get_qr("ox_a_1")

    assert result.success is True
    assert result.qr_code == "data:image/png;base64,iVBORw0KGgo="
    assert [(a.method, a.status) for a in result.tried] == [("GET", 405), ("POST", 200)]

async def test_get_qr_without_known_field_is_invalid():
    result = await make_client(lambda request: httpx.Response(200, json={"pairingCode": "ABCD"})).get_qr("ox_a_1")

    assert result.success is False
    assert "Invalid response" in result.message

async def test_extract_qr_prefers_nested_qrcode_base64():
    payload = {"qrcode": {"base64": "data:image/png;base64,AAAA"}, "url": "https://img"}
    assert extract_qr_from_json(payload) == "data:image/png;base64,AAAA"
    assert extract_qr_from_json({"url": "https://qr.example/img.png"}) == "https://qr.example/img.png"
    assert extract_qr_from_json({"qrcode": 123}) is None

async def test_get_instance_picks_matching_element_from_list():
    payload = [
        {"instanceName": "other", "owner": "5511000000000"},
        {"instanceName": "ox_a_1", "owner": "5511999999999", "profilePicture": "https://pic", "state": "open", "pushname": "Vendas"},
    ]
    result = await make_client(lambda request: httpx.Response(200, json=payload)).get_instance("ox_a_1")

    assert result.success is True
    assert result.phone_number == "5511999999999"
    assert result.profile_picture == "https://pic"
    assert result.status == "open"
    assert result.display_name == "Vendas"

async def test_get_instance_unwraps_instance_object_and_defaults_status():
    result = await make_client(lambda request: httpx.Response(200, json={"instance": {"number": "551188"}})).get_instance("ox_a_1")

    assert result.success is True
    assert result.phone_number == "551188"
    assert result.status == "disconnected"

async def test_get_instance_non_json_is_failure():
    result = await make_client(lambda request: httpx.Response(200, text="<html>")).get_instance("ox_a_1")

    assert result.success is False
    assert result.message == "Error parsing Evolution API response"

async def test_get_instance_accepts_numeric_fields():
    payload = {"instance": {"state": "open", "number": 5511999990000, "displayName": 42}}
    result = await make_client(lambda request: httpx.Response(200, json=payload)).get_instance("ox_a_1")

    assert result.success is True
    assert result.phone_number == "5511999990000"
    assert result.display_name == "42"
    assert result.status == "open"
