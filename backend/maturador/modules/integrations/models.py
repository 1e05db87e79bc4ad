# maturador/modules/integrations/models.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, Dict, Any
from datetime import datetime
from bson import ObjectId

from maturador.core.repository import utcnow

EVOLUTION_STATUSES = Literal["connected", "disconnected", "error"]
API_TEST_TYPES = Literal["evolution", "openai", "anthropic", "google"]

# --- Internal/DB Models (coleção saas_integracoes) ---
class EvolutionSettingsInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    usuario_id: ObjectId
    endpoint: str = ""
    status: EVOLUTION_STATUSES = "disconnected"
    last_test: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class EvolutionSettingsUpdateInternal(BaseModel):
    endpoint: Optional[str] = None
    status: Optional[EVOLUTION_STATUSES] = None
    last_test: Optional[datetime] = None

# --- API Models ---
class EvolutionSettingsAPI(BaseModel):
    endpoint: str = ""
    status: EVOLUTION_STATUSES = "disconnected"
    last_test: Optional[datetime] = None
    api_key_configured: bool = Field(False, description="Se a chave da Evolution existe no servidor")

class EvolutionSettingsUpdateAPI(BaseModel):
    endpoint: str = Field(..., min_length=1, description="URL base da Evolution API")

class EvolutionTestResultAPI(BaseModel):
    success: bool
    message: str
    settings: EvolutionSettingsAPI

class ApiTestRequest(BaseModel):
    api_type: API_TEST_TYPES
    test_data: Dict[str, Any] = Field(default_factory=dict)
