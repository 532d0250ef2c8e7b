from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class ItemSuggestion(BaseModel):
    name: str
    usage_count: int
    recent_cost: Decimal | None = None
    last_used: datetime | None = None
