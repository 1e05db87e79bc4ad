# maturador/modules/prompts/models.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import datetime
from bson import ObjectId

from maturador.core.repository import utcnow

PROMPT_CATEGORIES = Literal["conversacao", "vendas", "suporte", "personalizado"]

class PromptInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    usuario_id: ObjectId
    name: str
    content: str
    category: PROMPT_CATEGORIES = "conversacao"
    is_active: bool = True
    is_global: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class PromptAPI(BaseModel):
    id: str
    name: str
    content: str
    category: PROMPT_CATEGORIES
    is_active: bool
    is_global: bool
    created_at: datetime
    updated_at: datetime

class PromptCreateAPI(BaseModel):
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: PROMPT_CATEGORIES = "conversacao"
    is_global: bool = False

class PromptUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[PROMPT_CATEGORIES] = None
    is_active: Optional[bool] = None
    is_global: Optional[bool] = None
