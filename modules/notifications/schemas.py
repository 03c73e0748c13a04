# modules/notifications/schemas.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NotificationCreate(BaseModel):
    subject: str = Field(..., min_length=1, max_length=100)
    body: str = Field(..., min_length=1)
    user_id: int


class NotificationOut(BaseModel):
    id: int
    subject: str
    body: str
    user_id: int
    date: datetime
    is_read: bool
    model_config = ConfigDict(from_attributes=True)
