"""Activity log entities."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class ActivityType(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    INVENTORY = "inventory"
    DEPOSIT = "deposit"
    PAYROLL = "payroll"


class ActivityLog(BaseModel):
    """A human-readable audit line recorded after a successful operation."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    type: ActivityType
    description: str
    timestamp: datetime = Field(default_factory=datetime.now)
    user: str = ""
    ref_id: str | None = None
    ref_type: str | None = None
