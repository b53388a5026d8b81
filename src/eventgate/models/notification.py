"""Notification model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from eventgate.models.enums import NotificationType


class Notification(BaseModel):
    """Message delivered to a user as a side effect of an action."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    event_id: Optional[UUID] = None
    message: str
    created_at: datetime
    read_at: Optional[datetime] = None

    def is_read(self) -> bool:
        return self.read_at is not None
