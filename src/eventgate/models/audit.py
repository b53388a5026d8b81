"""Audit log entry model."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from eventgate.models.enums import AuditAction


class AuditEntry(BaseModel):
    """Write-once record of one action taken against one event."""

    entry_id: int
    event_id: UUID
    actor_id: UUID
    actor_name: str = "User"
    action: AuditAction
    from_value: Optional[Any] = None
    to_value: Optional[Any] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
