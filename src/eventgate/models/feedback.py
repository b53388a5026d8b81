"""Feedback thread and comment models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from eventgate.models.enums import ThreadStatus


class FeedbackComment(BaseModel):
    """Immutable message within a thread."""

    comment_id: UUID
    thread_id: UUID
    author_id: UUID
    author_name: str = "User"
    message: str
    created_at: datetime


class FeedbackThread(BaseModel):
    """Field-anchored conversation on one event."""

    thread_id: UUID
    event_id: UUID
    field_path: str
    opened_by: UUID
    status: ThreadStatus = ThreadStatus.OPEN
    reason: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None
    comments: list[FeedbackComment] = Field(default_factory=list)

    @property
    def last_activity_at(self) -> datetime:
        """Most recent comment time, or creation time for an empty thread."""
        if not self.comments:
            return self.created_at
        return max(comment.created_at for comment in self.comments)

    def is_open(self) -> bool:
        return self.status == ThreadStatus.OPEN


def latest_thread_per_field(threads: list[FeedbackThread]) -> dict[str, FeedbackThread]:
    """
    Pick the most relevant thread for each field path.

    Multiple threads may exist for one (event, field); the one with the most
    recent activity wins. Ties keep the thread seen first.
    """
    by_field: dict[str, FeedbackThread] = {}
    for thread in threads:
        current = by_field.get(thread.field_path)
        if current is None or thread.last_activity_at > current.last_activity_at:
            by_field[thread.field_path] = thread
    return by_field
