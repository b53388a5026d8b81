"""EventGate engine errors."""


class EventGateError(Exception):
    """Base error for EventGate operations."""

    def __init__(self, message: str, code: str = "EVENTGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class Unauthenticated(EventGateError):
    """No resolvable caller identity."""

    def __init__(self, message: str = "Unauthenticated"):
        super().__init__(message, "UNAUTHENTICATED")


class Unauthorized(EventGateError):
    """Caller lacks the required role or ownership."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED")


class NotFound(EventGateError):
    """Referenced entity does not exist."""

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, code)


class EventNotFound(NotFound):
    """Event does not exist."""

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}", "EVENT_NOT_FOUND")
        self.event_id = event_id


class ThreadNotFound(NotFound):
    """Feedback thread does not exist."""

    def __init__(self, thread_id: str):
        super().__init__(f"Feedback thread not found: {thread_id}", "THREAD_NOT_FOUND")
        self.thread_id = thread_id


class NotificationNotFound(NotFound):
    """Notification does not exist or belongs to someone else."""

    def __init__(self, notification_id: str):
        super().__init__(
            f"Notification not found: {notification_id}", "NOTIFICATION_NOT_FOUND"
        )
        self.notification_id = notification_id


class ChecklistItemNotFound(NotFound):
    """Checklist item id is not on the event."""

    def __init__(self, event_id: str, item_id: str):
        super().__init__(
            f"Checklist item {item_id} not found on event {event_id}",
            "CHECKLIST_ITEM_NOT_FOUND",
        )
        self.event_id = event_id
        self.item_id = item_id


class InvalidState(EventGateError):
    """Operation not legal from the entity's current status."""

    def __init__(self, current_status: str, action: str, message: str | None = None):
        super().__init__(
            message or f"Cannot {action} from status {current_status}",
            "INVALID_STATE",
        )
        self.current_status = current_status
        self.action = action


class ValidationFailed(EventGateError):
    """Content preconditions unmet; carries every offending field."""

    def __init__(self, fields: list[str], message: str | None = None):
        super().__init__(
            message or f"Invalid or missing fields: {', '.join(fields)}",
            "VALIDATION_FAILED",
        )
        self.fields = list(fields)


class PreconditionFailed(EventGateError):
    """State-legal operation blocked by a missing dependent fact."""

    def __init__(self, message: str):
        super().__init__(message, "PRECONDITION_FAILED")
