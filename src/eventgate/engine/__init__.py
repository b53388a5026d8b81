"""EventGate engine - core operations and lifecycle table."""

from eventgate.engine.core import EventGateEngine, resolve_caller
from eventgate.engine.errors import (
    ChecklistItemNotFound,
    EventGateError,
    EventNotFound,
    InvalidState,
    NotFound,
    NotificationNotFound,
    PreconditionFailed,
    ThreadNotFound,
    Unauthenticated,
    Unauthorized,
    ValidationFailed,
)

__all__ = [
    "ChecklistItemNotFound",
    "EventGateEngine",
    "EventGateError",
    "EventNotFound",
    "InvalidState",
    "NotFound",
    "NotificationNotFound",
    "PreconditionFailed",
    "ThreadNotFound",
    "Unauthenticated",
    "Unauthorized",
    "ValidationFailed",
    "resolve_caller",
]
