# maturador/modules/ai/models.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import datetime
from bson import ObjectId

from maturador.core.repository import utcnow

AI_PROVIDERS = Literal["openai", "anthropic", "google", "other"]
AI_CONFIG_STATUSES = Literal["active", "inactive", "error"]

# --- Internal/DB Models ---
class AIConfigInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    usuario_id: ObjectId
    name: str
    provider: AI_PROVIDERS
    api_key: str
    model: str
    is_active: bool = True
    priority: int = 1
    max_tokens: int = 2000
    temperature: float = 0.7
    description: str = ""
    status: AI_CONFIG_STATUSES = "inactive"
    last_test_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True, protected_namespaces=())

class BasePromptInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    usuario_id: ObjectId
    name: str
    content: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models ---
class AIConfigAPI(BaseModel):
    id: str
    name: str
    provider: AI_PROVIDERS
    api_key_masked: str
    model: str
    is_active: bool
    priority: int
    max_tokens: int
    temperature: float
    description: str
    status: AI_CONFIG_STATUSES
    last_test_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(protected_namespaces=())

class AIConfigCreateAPI(BaseModel):
    name: str = Field(..., min_length=1)
    provider: AI_PROVIDERS = "openai"
    api_key: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    max_tokens: int = Field(default=2000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    description: str = ""

    model_config = ConfigDict(protected_namespaces=())

class AIConfigUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    api_key: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    priority: Optional[int] = Field(None, ge=1)
    max_tokens: Optional[int] = Field(None, ge=1)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    description: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())

class AIConfigTestResultAPI(BaseModel):
    success: bool
    message: str
    config: AIConfigAPI

class BasePromptAPI(BaseModel):
    id: str
    name: str
    content: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

class BasePromptCreateAPI(BaseModel):
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
