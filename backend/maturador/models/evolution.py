# maturador/models/evolution.py

from pydantic import BaseModel, Field
from typing import Optional, List, Any, Dict

class EvolutionAttempt(BaseModel):
    """Uma tentativa (URL + método) contra a Evolution API."""
    url: str
    method: str
    status: int = Field(0, description="HTTP status; 0 quando a requisição nem completou")
    content_type: str = ""
    body_snippet: str = Field("", description="Primeiros 200 caracteres da resposta")
    error: Optional[str] = None

class EvolutionResultBase(BaseModel):
    success: bool
    instance_name: Optional[str] = None
    message: Optional[str] = None
    tried: List[EvolutionAttempt] = Field(default_factory=list)

    def attempt_statuses(self) -> str:
        return ", ".join(str(a.status) if a.status else "erro" for a in self.tried)

class EvolutionCreateResult(EvolutionResultBase):
    endpoint_used: Optional[str] = None
    data: Any = None

class EvolutionQRResult(EvolutionResultBase):
    qr_code: Optional[str] = Field(None, description="data URL (data:image/...;base64,...) ou URL da imagem")
    content_type: Optional[str] = None

class EvolutionInstanceResult(EvolutionResultBase):
    phone_number: Optional[str] = None
    profile_picture: Optional[str] = None
    status: str = "disconnected"
    display_name: Optional[str] = None
    raw_data: Dict[str, Any] = Field(default_factory=dict)

class ApiTestResult(BaseModel):
    success: bool
    message: str
