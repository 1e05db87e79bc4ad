# maturador/modules/users/models.py
from pydantic import BaseModel, Field, EmailStr, ConfigDict
from typing import Optional, Literal
from datetime import datetime
from bson import ObjectId

from maturador.core.repository import utcnow

USER_STATUSES = Literal["ativo", "inativo"]

# --- Internal/DB Models (coleção saas_usuarios) ---
class UserCreateInternal(BaseModel):
    nome: str
    email: EmailStr
    senha_hash: str
    chips_limite: int = 5
    status: USER_STATUSES = "ativo"

class UserUpdateInternal(BaseModel):
    nome: Optional[str] = None
    chips_limite: Optional[int] = None
    status: Optional[USER_STATUSES] = None

    model_config = ConfigDict(extra="ignore")

class UserInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    nome: str
    email: EmailStr
    senha_hash: str
    chips_limite: int = 5
    status: USER_STATUSES = "ativo"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    @property
    def is_active(self) -> bool:
        return self.status == "ativo"

# --- API Models ---
class UserAPI(BaseModel):
    id: str
    nome: str
    email: EmailStr
    chips_limite: int
    status: USER_STATUSES
    chips_em_uso: Optional[int] = None
    created_at: datetime

class UserCreateAPI(BaseModel):
    nome: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    chips_limite: int = Field(default=5, ge=0)
    status: USER_STATUSES = "ativo"

class UserProfileUpdateAPI(BaseModel):
    nome: str = Field(..., min_length=1)

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserAPI
