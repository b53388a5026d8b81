"""Unsent-input draft models."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FormDraft(BaseModel):
    """Saved form state keyed by (user, key)."""

    draft_id: UUID
    user_id: UUID
    key: str
    data: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime


class FeedbackDraft(BaseModel):
    """Unsent admin feedback keyed by (event, field, author)."""

    draft_id: UUID
    event_id: UUID
    field_path: str
    author_id: UUID
    reason: Optional[str] = None
    message: str = ""
    updated_at: datetime
