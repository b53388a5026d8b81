"""EventGate data models."""

from eventgate.models.enums import (
    REQUEST_CHANGES_FIELD,
    AuditAction,
    ChecklistSection,
    EventStatus,
    NotificationType,
    Role,
    ThreadStatus,
)
from eventgate.models.event import (
    ChecklistItem,
    Event,
    EventStats,
    EventSummary,
    ReviewQueueEntry,
    VenueConflict,
)
from eventgate.models.feedback import FeedbackComment, FeedbackThread, latest_thread_per_field
from eventgate.models.audit import AuditEntry
from eventgate.models.notification import Notification
from eventgate.models.draft import FeedbackDraft, FormDraft

__all__ = [
    "REQUEST_CHANGES_FIELD",
    "AuditAction",
    "AuditEntry",
    "ChecklistItem",
    "ChecklistSection",
    "Event",
    "EventStats",
    "EventStatus",
    "EventSummary",
    "FeedbackComment",
    "FeedbackDraft",
    "FeedbackThread",
    "FormDraft",
    "Notification",
    "NotificationType",
    "ReviewQueueEntry",
    "Role",
    "ThreadStatus",
    "VenueConflict",
    "latest_thread_per_field",
]
