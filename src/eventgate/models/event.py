"""Event model - one hosting proposal."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from eventgate.models.enums import EventStatus


class ChecklistItem(BaseModel):
    """One post-approval task."""

    id: str
    task: str
    completed: bool = False
    section: str
    due_date: Optional[str] = None


class Event(BaseModel):
    """Event proposal owned by a host."""

    # Identity
    event_id: UUID
    host_id: UUID

    # Status machine
    status: EventStatus = EventStatus.DRAFT

    # Content
    title: str = ""
    short_description: str = ""
    event_date: Optional[datetime] = None
    venue: str = ""
    capacity: int = 50
    formats: list[str] = Field(default_factory=list)
    is_public: bool = True
    has_hosted_before: bool = False
    target_audience: str = ""
    planning_doc_url: Optional[str] = None

    # Post-approval
    luma_url: Optional[str] = None
    on_calendar: bool = False

    # Agreement & lifecycle timestamps
    agreement_accepted_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None

    # Checklist (empty until first approval)
    checklist_template: str = "general"
    checklist: list[ChecklistItem] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.host_id == user_id

    def has_checklist(self) -> bool:
        return bool(self.checklist)


class EventSummary(BaseModel):
    """Lightweight event listing entry."""

    event_id: UUID
    title: str
    short_description: str
    event_date: Optional[datetime] = None
    venue: str
    status: EventStatus
    capacity: int
    formats: list[str]
    submitted_at: Optional[datetime] = None
    created_at: datetime


class EventStats(BaseModel):
    """Per-host status counts for the dashboard."""

    total_events: int = 0
    draft_count: int = 0
    submitted_count: int = 0
    changes_requested_count: int = 0
    approved_count: int = 0
    published_count: int = 0


class ReviewQueueEntry(BaseModel):
    """Event awaiting admin review."""

    event_id: UUID
    title: str
    status: EventStatus
    event_date: Optional[datetime] = None
    venue: str
    host_id: UUID
    host_name: str
    submitted_at: Optional[datetime] = None
    open_thread_count: int = 0
    has_open_threads: bool = False


class VenueConflict(BaseModel):
    """Another event holding the same venue near the candidate time."""

    event_id: UUID
    title: str
    event_date: datetime
    venue: str
    host_name: str
    status: EventStatus
    time_difference_hours: float
    is_direct_conflict: bool
