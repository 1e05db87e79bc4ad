# maturador/modules/analytics/models.py
from datetime import timedelta
from typing import List, Literal, Optional

from pydantic import BaseModel

TIME_RANGES = Literal["24h", "7d", "30d", "90d"]

RANGE_DELTAS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}

class ChipPerformance(BaseModel):
    chip_id: str
    name: str
    messages: int
    maturation_percentage: float
    maturation_status: Optional[str] = None
    status: str

class AnalyticsAPI(BaseModel):
    time_range: TIME_RANGES
    total_chips: int
    active_chips: int
    online_chips: int
    total_messages: int
    messages_in_range: int
    messages_today: int
    connection_tests_in_range: int
    average_maturation: float
    unread_alerts: int
    chip_performance: List[ChipPerformance]
