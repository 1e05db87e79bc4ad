# maturador/modules/maturador/models.py
import uuid
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List
from datetime import datetime
from bson import ObjectId

from maturador.core.repository import utcnow

PAIR_STATUSES = Literal["running", "paused", "stopped"]

class ChipPair(BaseModel):
    """Dois chips (ids de conexão) conversando entre si."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    chip1: str
    chip2: str
    is_active: bool = True
    messages_exchanged: int = 0
    session_messages: int = 0
    last_activity: Optional[datetime] = None
    status: PAIR_STATUSES = "stopped"
    created_at: datetime = Field(default_factory=utcnow)

    def same_chips(self, chip1: str, chip2: str) -> bool:
        return {self.chip1, self.chip2} == {chip1, chip2}

    def involves(self, chip_id: str) -> bool:
        return chip_id in (self.chip1, self.chip2)

# --- Internal/DB Models (coleção saas_maturador, um documento por usuário) ---
class MaturadorConfigInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    usuario_id: ObjectId
    is_running: bool = False
    max_messages_per_session: int = 10
    use_base_prompt: bool = True
    pairs: List[ChipPair] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    def find_pair(self, pair_id: str) -> Optional[ChipPair]:
        return next((p for p in self.pairs if p.id == pair_id), None)

# --- API Models ---
class ChipPairAPI(ChipPair):
    chip1_name: Optional[str] = None
    chip2_name: Optional[str] = None

class MaturadorStats(BaseModel):
    pairs: int
    active: int
    messages: int

class MaturadorAPI(BaseModel):
    is_running: bool
    max_messages_per_session: int
    use_base_prompt: bool
    pairs: List[ChipPairAPI]
    stats: MaturadorStats

class MaturadorSettingsUpdateAPI(BaseModel):
    max_messages_per_session: Optional[int] = Field(None, ge=1, le=1000)
    use_base_prompt: Optional[bool] = None

class PairCreateAPI(BaseModel):
    chip1: str = Field(..., min_length=1)
    chip2: str = Field(..., min_length=1)

class TickSummary(BaseModel):
    configs: int = 0
    messages: int = 0
    paused_pairs: int = 0
