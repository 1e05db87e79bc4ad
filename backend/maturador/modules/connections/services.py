# maturador/modules/connections/services.py
import re
import time
from typing import Optional, List

import httpx
from bson import ObjectId
from fastapi import HTTPException, status
from loguru import logger

from maturador.core.repository import utcnow
from maturador.models.evolution import EvolutionResultBase
from maturador.modules.users.models import UserInDB
from maturador.modules.integrations.models import EvolutionSettingsInDB
from maturador.modules.integrations.repository import EvolutionSettingsRepository
from maturador.modules.maturador.repository import MaturadorRepository
from maturador.modules.monitoring.repository import ChipMonitoringRepository
from maturador.services.evolution_client import EvolutionClient, normalize_base_url
from .repository import ConnectionRepository
from .models import (
    ConnectionInDB, ConnectionAPI, ConnectionConfig, ConnectionCreateAPI, ConnectionCreateInternal,
    ConnectionUpdateAPI, ChipBehavior, EvolutionConfig, QRCodeAPI, EvolutionFailureDetail, CONNECTED_STATES,
)

def sanitize_instance_name(nome: str) -> str:
    """'Chip Vendas #1' -> 'chip_vendas_1'. Vazio vira 'connection'."""
    sanitized = re.sub(r"[^a-z0-9]+", "_", nome.lower()).strip("_")
    return sanitized or "connection"

def build_instance_name(nome: str, now_ms: Optional[int] = None) -> str:
    stamp = str(now_ms if now_ms is not None else int(time.time() * 1000))[-6:]
    return f"ox_{sanitize_instance_name(nome)}_{stamp}"

def evolution_failure(result: EvolutionResultBase, fallback: str) -> HTTPException:
    message = result.message or fallback
    if result.tried:
        message = f"{message}. Attempt statuses: {result.attempt_statuses()}"
    detail = EvolutionFailureDetail(message=message, tried=[a.model_dump() for a in result.tried])
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail.model_dump())

class ConnectionService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def to_api(self, conn: ConnectionInDB) -> ConnectionAPI:
        return ConnectionAPI(
            id=str(conn.id),
            nome=conn.nome,
            usuario_id=str(conn.usuario_id),
            status=conn.status,
            config=conn.config,
            created_at=conn.created_at,
            updated_at=conn.updated_at,
        )

    def evolution_client(self, endpoint: Optional[str]) -> EvolutionClient:
        return EvolutionClient(endpoint, transport=self.transport)

    async def get_owned(self, usuario_id: ObjectId, connection_id: str, repo: ConnectionRepository) -> ConnectionInDB:
        conn = await repo.get_owned(connection_id, usuario_id)
        if not conn:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
        return conn

    async def _save_config(self, conn: ConnectionInDB, config: ConnectionConfig, repo: ConnectionRepository) -> ConnectionInDB:
        updated = await repo.update(conn.id, {"config": config.model_dump()})
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
        return updated

    async def _require_evolution_settings(
        self, usuario_id: ObjectId, integration_repo: EvolutionSettingsRepository, require_tested: bool = True
    ) -> EvolutionSettingsInDB:
        evo = await integration_repo.get_for_user(usuario_id)
        if not evo or not evo.endpoint:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Evolution API endpoint is not configured. Configure it under Integrations first.",
            )
        if require_tested and evo.status != "connected":
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Evolution API has not been tested successfully. Test the connection first.",
            )
        return evo

    async def list_connections(self, usuario_id: ObjectId, repo: ConnectionRepository) -> List[ConnectionAPI]:
        return [self.to_api(c) for c in await repo.list_for_user(usuario_id)]

    async def list_active(self, usuario_id: ObjectId, repo: ConnectionRepository) -> List[ConnectionAPI]:
        return [self.to_api(c) for c in await repo.list_connected(usuario_id)]

    async def create_connection(
        self,
        user: UserInDB,
        payload: ConnectionCreateAPI,
        repo: ConnectionRepository,
        integration_repo: EvolutionSettingsRepository,
    ) -> ConnectionInDB:
        log = logger.bind(service="ConnectionService", usuario_id=str(user.id), nome=payload.nome)

        in_use = await repo.count_for_user(user.id)
        if in_use >= user.chips_limite:
            log.warning(f"Chip limit reached ({in_use}/{user.chips_limite}).")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Chip limit reached")

        config = ConnectionConfig(descricao=payload.descricao or "")
        if payload.create_instance:
            evo = await self._require_evolution_settings(user.id, integration_repo)
            base_url = normalize_base_url(evo.endpoint)
            instance_name = build_instance_name(payload.nome)
            log.info(f"Creating Evolution instance '{instance_name}' at {base_url}")
            result = await self.evolution_client(base_url).create_instance(instance_name)
            if not result.success:
                log.error(f"Evolution instance creation failed: {result.message}")
                raise evolution_failure(result, "Failed to create Evolution instance")
            config.status = "aguardando_qr"
            config.evolutionInstance = instance_name
            config.evolutionConfig = EvolutionConfig(endpoint=base_url, instanceName=instance_name)

        created = await repo.create(ConnectionCreateInternal(nome=payload.nome.strip(), usuario_id=user.id, config=config))
        log.success(f"Connection created (ID: {created.id}, status: {created.config.status}).")
        return created

    async def update_connection(
        self, usuario_id: ObjectId, connection_id: str, payload: ConnectionUpdateAPI, repo: ConnectionRepository
    ) -> ConnectionInDB:
        conn = await self.get_owned(usuario_id, connection_id, repo)
        data = payload.model_dump(exclude_unset=True)
        update: dict = {k: data[k] for k in ("nome", "status") if data.get(k) is not None}
        config_changes = {k: data[k] for k in ("descricao", "aiModel") if data.get(k) is not None}
        if config_changes:
            update["config"] = conn.config.model_copy(update=config_changes).model_dump()
        updated = await repo.update(conn.id, update)
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
        return updated

    async def delete_connection(
        self,
        usuario_id: ObjectId,
        connection_id: str,
        repo: ConnectionRepository,
        maturador_repo: MaturadorRepository,
        monitoring_repo: ChipMonitoringRepository,
    ) -> None:
        conn = await self.get_owned(usuario_id, connection_id, repo)
        chip_id = str(conn.id)
        await repo.delete(conn.id)
        # chip removido não pode continuar em pares nem no monitoramento
        await maturador_repo.remove_chip(usuario_id, chip_id)
        await monitoring_repo.delete_for_chip(usuario_id, chip_id)
        logger.bind(service="ConnectionService", usuario_id=str(usuario_id)).info(f"Connection {chip_id} deleted.")

    async def create_instance(
        self,
        usuario_id: ObjectId,
        connection_id: str,
        repo: ConnectionRepository,
        integration_repo: EvolutionSettingsRepository,
    ) -> QRCodeAPI:
        """(Re)cria a instância na Evolution e já tenta buscar o QR."""
        conn = await self.get_owned(usuario_id, connection_id, repo)
        log = logger.bind(service="ConnectionService", connection_id=connection_id)
        evo = await self._require_evolution_settings(usuario_id, integration_repo, require_tested=False)
        base_url = normalize_base_url(evo.endpoint)
        instance_name = conn.config.evolutionInstance or f"ox_connection_{connection_id[:8]}"

        client = self.evolution_client(base_url)
        result = await client.create_instance(instance_name)
        if not result.success:
            log.error(f"Evolution instance creation failed: {result.message}")
            raise evolution_failure(result, "Failed to create Evolution instance")

        config = conn.config.model_copy(deep=True)
        config.evolutionInstance = instance_name
        config.status = "aguardando_qr"
        config.evolutionConfig = EvolutionConfig(endpoint=base_url, instanceName=instance_name)
        await self._save_config(conn, config, repo)

        qr = await client.get_qr(instance_name)
        if not qr.success:
            log.warning(f"Instance created but QR not available yet: {qr.message}")
            return QRCodeAPI(connection_id=connection_id, instance_name=instance_name)
        return QRCodeAPI(connection_id=connection_id, instance_name=instance_name, qr_code=qr.qr_code or "")

    async def get_qr_code(
        self,
        usuario_id: ObjectId,
        connection_id: str,
        repo: ConnectionRepository,
        integration_repo: EvolutionSettingsRepository,
    ) -> QRCodeAPI:
        conn = await self.get_owned(usuario_id, connection_id, repo)
        instance_name = conn.config.evolutionInstance
        if not instance_name:
            return await self.create_instance(usuario_id, connection_id, repo, integration_repo)

        endpoint = conn.config.evolutionConfig.endpoint if conn.config.evolutionConfig else None
        if not endpoint:
            endpoint = (await self._require_evolution_settings(usuario_id, integration_repo, require_tested=False)).endpoint
        qr = await self.evolution_client(endpoint).get_qr(instance_name)
        if not qr.success:
            logger.bind(service="ConnectionService", connection_id=connection_id).error(f"QR fetch failed: {qr.message}")
            raise evolution_failure(qr, "Failed to obtain QR code")
        return QRCodeAPI(connection_id=connection_id, instance_name=instance_name, qr_code=qr.qr_code or "")

    async def refresh_from_evolution(
        self,
        usuario_id: ObjectId,
        connection_id: str,
        repo: ConnectionRepository,
        integration_repo: EvolutionSettingsRepository,
    ) -> ConnectionInDB:
        """Puxa telefone, foto, nome e estado da instância para o config da conexão."""
        conn = await self.get_owned(usuario_id, connection_id, repo)
        instance_name = conn.config.evolutionInstance
        if not instance_name:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Connection has no Evolution instance")

        endpoint = conn.config.evolutionConfig.endpoint if conn.config.evolutionConfig else None
        if not endpoint:
            endpoint = (await self._require_evolution_settings(usuario_id, integration_repo, require_tested=False)).endpoint
        result = await self.evolution_client(endpoint).get_instance(instance_name)
        if not result.success:
            raise evolution_failure(result, "Failed to fetch instance data")

        config = conn.config.model_copy(deep=True)
        config.phoneNumber = result.phone_number
        config.profilePicture = result.profile_picture
        config.displayName = result.display_name
        config.connectionState = result.status
        config.lastUpdate = utcnow()
        if result.phone_number:
            config.telefone = result.phone_number
        if result.status in CONNECTED_STATES:
            config.status = "conectado"
        logger.bind(service="ConnectionService", connection_id=connection_id).info(
            f"Connection refreshed from Evolution: state={result.status}"
        )
        return await self._save_config(conn, config, repo)

    async def update_behavior(
        self, usuario_id: ObjectId, connection_id: str, behavior: ChipBehavior, repo: ConnectionRepository
    ) -> ConnectionInDB:
        conn = await self.get_owned(usuario_id, connection_id, repo)
        config = conn.config.model_copy(update={"behavior": behavior}, deep=True)
        return await self._save_config(conn, config, repo)

async def get_connection_service() -> ConnectionService:
    return ConnectionService()
