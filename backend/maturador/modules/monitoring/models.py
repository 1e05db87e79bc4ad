# maturador/modules/monitoring/models.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import datetime
from bson import ObjectId

from maturador.core.repository import utcnow

MATURATION_STATUSES = Literal["heating", "ready", "active", "cooling"]
LINK_STATUSES = Literal["online", "offline", "testing"]
HISTORY_EVENTS = Literal["started", "paused", "resumed", "message_sent", "connection_test", "error"]
ALERT_TYPES = Literal["connection_failed", "blocked", "inactive", "error"]

# --- Internal/DB Models ---
class ChipMonitoringInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    chip_id: str
    usuario_id: ObjectId
    maturation_percentage: float = Field(default=0, ge=0, le=100)
    maturation_status: MATURATION_STATUSES = "heating"
    start_date: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    total_messages: int = 0
    connection_status: LINK_STATUSES = "online"
    last_connection_test: datetime = Field(default_factory=utcnow)
    is_blocked: bool = False
    error_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class ChipHistoryInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    usuario_id: ObjectId
    chip_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    event: HISTORY_EVENTS
    details: str = ""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class AlertInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    usuario_id: ObjectId
    chip_id: str
    chip_name: str
    type: ALERT_TYPES
    message: str
    timestamp: datetime = Field(default_factory=utcnow)
    is_read: bool = False

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models ---
class ChipMonitoringAPI(BaseModel):
    chip_id: str
    chip_name: Optional[str] = None
    maturation_percentage: float
    maturation_status: MATURATION_STATUSES
    start_date: datetime
    last_activity: datetime
    total_messages: int
    connection_status: LINK_STATUSES
    last_connection_test: datetime
    is_blocked: bool
    error_count: int

class ChipHistoryAPI(BaseModel):
    id: str
    chip_id: str
    timestamp: datetime
    event: HISTORY_EVENTS
    details: str

class AlertAPI(BaseModel):
    id: str
    chip_id: str
    chip_name: str
    type: ALERT_TYPES
    message: str
    timestamp: datetime
    is_read: bool
