"""EventGate database layer."""

from eventgate.db.base import Base, get_session, init_db
from eventgate.db.tables import (
    EventTable,
    FeedbackThreadTable,
    FeedbackCommentTable,
    AuditLogTable,
    NotificationTable,
    FormDraftTable,
    FeedbackDraftTable,
)

__all__ = [
    "Base",
    "get_session",
    "init_db",
    "EventTable",
    "FeedbackThreadTable",
    "FeedbackCommentTable",
    "AuditLogTable",
    "NotificationTable",
    "FormDraftTable",
    "FeedbackDraftTable",
]
