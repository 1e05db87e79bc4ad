# maturador/services/evolution_client.py

import base64
import json
import re
from typing import Optional, List, Dict, Any, Tuple
from urllib.parse import quote

import httpx
from loguru import logger

from maturador.core.config import settings
from maturador.core.logging_config import trace_id_var
from maturador.models.evolution import (
    EvolutionAttempt, EvolutionCreateResult, EvolutionQRResult, EvolutionInstanceResult
)

# Versões diferentes da Evolution expõem rotas diferentes; tentamos em ordem
# e ficamos com a primeira que responder 2xx.
CREATE_CANDIDATES: List[Tuple[str, str, Optional[str]]] = [
    # (path, method, chave do nome no body; None = nome vai no path)
    ("/instance/create", "POST", "instanceName"),
    ("/instance/create/{name}", "POST", None),
    ("/manager/instances/create", "POST", "instanceName"),
    ("/instances/create", "POST", "instanceName"),
    ("/instance", "POST", "instanceName"),
    ("/instances", "POST", "instanceName"),
    ("/v1/instance/create", "POST", "instanceName"),
    ("/api/instance/create", "POST", "instanceName"),
    ("/instance/create", "POST", "name"),
    ("/instance/create", "POST", "instance"),
    ("/manager/instances", "POST", "instanceName"),
    ("/manager/instances", "POST", "name"),
]

QR_CANDIDATES: List[str] = [
    "/instance/connect/{name}",
    "/instance/qr?instanceName={name}",
    "/instance/qrcode?instanceName={name}",
    "/instance/{name}/qrcode",
    "/instances/{name}/qrcode",
    "/instances/qr?instanceName={name}",
    "/manager/instances/{name}/qrcode",
    "/manager/instances/qr?instanceName={name}",
]

INSTANCE_CANDIDATES: List[str] = [
    "/instance/fetchInstances?instanceName={name}",
    "/instance/{name}",
    "/instance/connectionState/{name}",
]

# Campos onde diferentes versões colocam o QR, em ordem de preferência
QR_JSON_FIELDS = ["qrcode.base64", "qrcode", "base64", "qrCode", "qr", "image", "imageUrl", "url"]

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
SNIPPET_LEN = 200

def normalize_base_url(url: Optional[str]) -> str:
    """Garante esquema (https por padrão) e remove a barra final."""
    u = str(url or "").strip()
    if not u:
        return ""
    if not re.match(r"^https?://", u, flags=re.IGNORECASE):
        u = f"https://{u}"
    return u[:-1] if u.endswith("/") else u

def _dig(data: Dict[str, Any], dotted: str) -> Any:
    current: Any = data
    for part in dotted.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current

def extract_qr_from_json(data: Any) -> Optional[str]:
    """Procura o QR nos formatos conhecidos e normaliza base64 puro para data URL."""
    if not isinstance(data, dict):
        return None
    candidate = None
    for field in QR_JSON_FIELDS:
        value = _dig(data, field)
        if isinstance(value, str) and value.strip():
            candidate = value.strip()
            break
    if candidate is None:
        return None
    compact = re.sub(r"\s+", "", candidate)
    if not candidate.lower().startswith("data:image/") and _BASE64_RE.match(compact):
        return f"data:image/png;base64,{compact}"
    return candidate

def _first(data: Dict[str, Any], *keys: str) -> Optional[str]:
    """Primeiro valor não vazio entre as chaves, como texto (owner/number às vezes vêm numéricos)."""
    for key in keys:
        value = data.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return None

def extract_instance_data(payload: Any, instance_name: str) -> Dict[str, Any]:
    """fetchInstances devolve lista; outras rotas devolvem objeto (às vezes em 'instance')."""
    if isinstance(payload, list):
        match = next((i for i in payload if isinstance(i, dict) and i.get("instanceName") == instance_name), None)
        if match is None and payload and isinstance(payload[0], dict):
            match = payload[0]
        return match or {}
    if isinstance(payload, dict):
        inner = payload.get("instance")
        return inner if isinstance(inner, dict) else payload
    return {}

class EvolutionClient:
    """Cliente da Evolution API (gateway WhatsApp) com probing de rotas."""

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = normalize_base_url(base_url)
        self.api_key = api_key if api_key is not None else settings.EVOLUTION_API_KEY
        self.timeout = timeout or settings.EVOLUTION_HTTP_TIMEOUT
        self.transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _precondition_error(self, instance_name: str) -> Optional[str]:
        if not self.base_url or not instance_name:
            return "baseUrl and instanceName are required"
        if not self.api_key:
            return "EVOLUTION_API_KEY is not configured"
        return None

    def _url(self, template: str, instance_name: str) -> str:
        return self.base_url + template.format(name=quote(instance_name, safe=""))

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        attempts: List[EvolutionAttempt],
        body: Optional[Dict[str, Any]] = None,
    ) -> Optional[httpx.Response]:
        """Executa uma tentativa e registra o resultado. Retorna a resposta só se for 2xx."""
        headers = {"apikey": self.api_key}
        if body is not None:
            headers["Content-Type"] = "application/json"
        log = logger.bind(trace_id=trace_id_var.get(), service="EvolutionClient")
        log.debug(f"Trying Evolution endpoint: {method} {url}")
        try:
            response = await client.request(method, url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            log.warning(f"Timeout on {method} {url}")
            attempts.append(EvolutionAttempt(url=url, method=method, error=f"timeout: {e}"))
            return None
        except httpx.RequestError as e:
            log.warning(f"Request error on {method} {url}: {e}")
            attempts.append(EvolutionAttempt(url=url, method=method, error=str(e)))
            return None

        content_type = response.headers.get("content-type", "")
        snippet = "" if content_type.startswith("image/") else response.text[:SNIPPET_LEN]
        attempts.append(EvolutionAttempt(
            url=url, method=method, status=response.status_code,
            content_type=content_type, body_snippet=snippet,
        ))
        log.debug(f"Attempt result: {url} -> {response.status_code}")
        return response if response.is_success else None

    async def create_instance(self, instance_name: str) -> EvolutionCreateResult:
        log = logger.bind(trace_id=trace_id_var.get(), service="EvolutionClient", instance=instance_name)
        problem = self._precondition_error(instance_name)
        if problem:
            log.error(f"Cannot create Evolution instance: {problem}")
            return EvolutionCreateResult(success=False, instance_name=instance_name, message=problem)

        attempts: List[EvolutionAttempt] = []
        async with self._http_client() as client:
            for path, method, name_key in CREATE_CANDIDATES:
                url = self._url(path, instance_name)
                body = {name_key: instance_name} if name_key else None
                response = await self._attempt(client, method, url, attempts, body)
                if response is None:
                    continue
                try:
                    data: Any = response.json()
                except json.JSONDecodeError:
                    data = response.text
                log.success(f"Evolution instance created via {url}")
                return EvolutionCreateResult(
                    success=True, instance_name=instance_name, endpoint_used=url, data=data, tried=attempts,
                )

        log.error(f"All Evolution create endpoints failed. Statuses: {[a.status for a in attempts]}")
        return EvolutionCreateResult(
            success=False, instance_name=instance_name,
            message="Failed to create Evolution instance (all attempts failed)", tried=attempts,
        )

    async def get_qr(self, instance_name: str) -> EvolutionQRResult:
        log = logger.bind(trace_id=trace_id_var.get(), service="EvolutionClient", instance=instance_name)
        problem = self._precondition_error(instance_name)
        if problem:
            return EvolutionQRResult(success=False, instance_name=instance_name, message=problem)

        attempts: List[EvolutionAttempt] = []
        final: Optional[httpx.Response] = None
        async with self._http_client() as client:
            for template in QR_CANDIDATES:
                url = self._url(template, instance_name)
                final = await self._attempt(client, "GET", url, attempts)
                if final is not None:
                    break
                final = await self._attempt(client, "POST", url, attempts, {"instanceName": instance_name})
                if final is not None:
                    break

        if final is None:
            log.error("Could not obtain QR code from any Evolution endpoint.")
            return EvolutionQRResult(
                success=False, instance_name=instance_name,
                message="Could not obtain QR code from Evolution API", tried=attempts,
            )

        content_type = final.headers.get("content-type", "")
        if content_type.startswith("image/"):
            mime = content_type.split(";")[0].strip()
            encoded = base64.b64encode(final.content).decode("ascii")
            return EvolutionQRResult(
                success=True, instance_name=instance_name,
                qr_code=f"data:{mime};base64,{encoded}", content_type=mime, tried=attempts,
            )

        try:
            payload = final.json()
        except json.JSONDecodeError:
            payload = None
        qr_code = extract_qr_from_json(payload)
        if not qr_code:
            log.warning("Evolution responded 2xx but no QR field was found.")
            return EvolutionQRResult(
                success=False, instance_name=instance_name,
                message="Invalid response from Evolution API while fetching QR", tried=attempts,
            )
        return EvolutionQRResult(success=True, instance_name=instance_name, qr_code=qr_code, tried=attempts)

    async def get_instance(self, instance_name: str) -> EvolutionInstanceResult:
        log = logger.bind(trace_id=trace_id_var.get(), service="EvolutionClient", instance=instance_name)
        problem = self._precondition_error(instance_name)
        if problem:
            return EvolutionInstanceResult(success=False, instance_name=instance_name, message=problem)

        attempts: List[EvolutionAttempt] = []
        final: Optional[httpx.Response] = None
        async with self._http_client() as client:
            for template in INSTANCE_CANDIDATES:
                final = await self._attempt(client, "GET", self._url(template, instance_name), attempts)
                if final is not None:
                    break

        if final is None:
            log.error("All instance endpoints failed.")
            return EvolutionInstanceResult(
                success=False, instance_name=instance_name,
                message="Could not fetch instance data from Evolution API", tried=attempts,
            )

        try:
            payload = final.json()
        except json.JSONDecodeError:
            log.error(f"Evolution returned non-JSON instance data: {final.text[:SNIPPET_LEN]}")
            return EvolutionInstanceResult(
                success=False, instance_name=instance_name,
                message="Error parsing Evolution API response", tried=attempts,
            )

        data = extract_instance_data(payload, instance_name)
        result = EvolutionInstanceResult(
            success=True,
            instance_name=instance_name,
            phone_number=_first(data, "owner", "phone", "number"),
            profile_picture=_first(data, "profilePicture", "picture", "avatar"),
            status=_first(data, "state", "status", "connectionState") or "disconnected",
            display_name=_first(data, "displayName", "pushname", "name"),
            raw_data=data,
            tried=attempts,
        )
        log.info(f"Instance data extracted: status={result.status} phone={result.phone_number}")
        return result

    async def check_reachable(self) -> Tuple[bool, str]:
        """Teste da configuração global (aba APIs): GET /manager/findInstances."""
        if not self.base_url:
            return False, "Evolution endpoint is not configured"
        if not self.api_key:
            return False, "Evolution API key not configured"
        url = f"{self.base_url}/manager/findInstances"
        try:
            async with self._http_client() as client:
                response = await client.get(url, headers={"apikey": self.api_key, "Content-Type": "application/json"})
        except httpx.RequestError as e:
            logger.warning(f"Evolution reachability check failed: {e}")
            return False, f"Connection error: {e}"
        if response.is_success:
            return True, "Evolution API connection successful"
        return False, f"API error: {response.status_code}"
