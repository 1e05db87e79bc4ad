# maturador/modules/connections/models.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, Dict, Any, List
from datetime import datetime
from bson import ObjectId

from maturador.core.repository import utcnow

CONNECTION_STATUSES = Literal["ativo", "inativo"]
CHIP_STATUSES = Literal["desconectado", "aguardando_qr", "conectado"]

# Estados da Evolution que contam como "conectado"
CONNECTED_STATES = ("open", "connected")

class ChipBehavior(BaseModel):
    """Comportamento de IA do chip (modal de configuração)."""
    personality: str = "Atencioso e prestativo"
    aiModel: str = "gpt-4"
    phone: Optional[str] = None
    maxTokens: int = Field(default=2000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    systemPrompt: str = "Você é um assistente inteligente e prestativo. Responda de forma clara e objetiva."
    isAutoReply: bool = True
    responseDelay: int = Field(default=5, ge=0, description="Segundos antes de responder")
    maxConversationsPerDay: int = Field(default=100, ge=1)
    isBehaviorActive: bool = False

class EvolutionConfig(BaseModel):
    endpoint: Optional[str] = None
    instanceName: Optional[str] = None

class ConnectionConfig(BaseModel):
    # Nomes em camelCase/pt-BR: é o formato gravado na coluna config de saas_conexoes
    descricao: str = ""
    aiModel: str = "ChatGPT"
    status: CHIP_STATUSES = "desconectado"
    telefone: Optional[str] = None
    evolutionInstance: Optional[str] = None
    evolutionConfig: Optional[EvolutionConfig] = None
    phoneNumber: Optional[str] = None
    profilePicture: Optional[str] = None
    displayName: Optional[str] = None
    connectionState: Optional[str] = None
    lastUpdate: Optional[datetime] = None
    behavior: Optional[ChipBehavior] = None

    model_config = ConfigDict(extra="ignore")

# --- Internal/DB Models (coleção saas_conexoes) ---
class ConnectionCreateInternal(BaseModel):
    nome: str
    usuario_id: ObjectId
    status: CONNECTION_STATUSES = "ativo"
    config: ConnectionConfig = Field(default_factory=ConnectionConfig)

    model_config = ConfigDict(arbitrary_types_allowed=True)

class ConnectionUpdateInternal(BaseModel):
    nome: Optional[str] = None
    status: Optional[CONNECTION_STATUSES] = None
    config: Optional[ConnectionConfig] = None

class ConnectionInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    nome: str
    usuario_id: ObjectId
    status: CONNECTION_STATUSES = "ativo"
    config: ConnectionConfig = Field(default_factory=ConnectionConfig)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models ---
class ConnectionAPI(BaseModel):
    id: str
    nome: str
    usuario_id: str
    status: CONNECTION_STATUSES
    config: ConnectionConfig
    created_at: datetime
    updated_at: datetime

class ConnectionCreateAPI(BaseModel):
    nome: str = Field(..., min_length=1)
    descricao: Optional[str] = None
    create_instance: bool = Field(True, description="Cria a instância na Evolution API junto com a conexão")

class ConnectionUpdateAPI(BaseModel):
    nome: Optional[str] = Field(None, min_length=1)
    status: Optional[CONNECTION_STATUSES] = None
    descricao: Optional[str] = None
    aiModel: Optional[str] = None

class QRCodeAPI(BaseModel):
    connection_id: str
    instance_name: str
    qr_code: str = ""
    status: Literal["connecting", "open", "close"] = "connecting"

class EvolutionFailureDetail(BaseModel):
    message: str
    tried: List[Dict[str, Any]] = Field(default_factory=list)
