from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

NotificationType = Literal["info", "success", "warning", "error"]


class NotificationRecord(BaseModel):
    id: str
    title: str
    message: str = ""
    type: NotificationType = "info"
    created_at: datetime
    read: bool = False
    user_id: str | None = None
    link: str | None = None


class RosterResponse(BaseModel):
    items: list[NotificationRecord]
    unread_count: int
    source: str
