"""EventGate enumerations."""

from enum import Enum


class EventStatus(str, Enum):
    """Event proposal lifecycle status."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    CHANGES_REQUESTED = "changes_requested"
    RESUBMITTED = "resubmitted"
    APPROVED = "approved"
    PUBLISHED = "published"

    @classmethod
    def editable_states(cls) -> set["EventStatus"]:
        """Return states in which the host may edit content."""
        return {cls.DRAFT, cls.CHANGES_REQUESTED}

    @classmethod
    def under_review_states(cls) -> set["EventStatus"]:
        """Return states waiting on an admin decision."""
        return {cls.SUBMITTED, cls.RESUBMITTED}

    @classmethod
    def scheduled_states(cls) -> set["EventStatus"]:
        """Return states that hold a venue slot for conflict detection."""
        return {cls.SUBMITTED, cls.RESUBMITTED, cls.APPROVED, cls.PUBLISHED}


class Role(str, Enum):
    """Role of a resolved caller."""

    HOST = "host"
    ADMIN = "admin"


class ThreadStatus(str, Enum):
    """Feedback thread status."""

    OPEN = "open"
    RESOLVED = "resolved"


class AuditAction(str, Enum):
    """Kinds of audit log entries."""

    # Validated lifecycle transition (submit, request changes, approve, publish)
    STATUS_CHANGE = "status_change"
    # Admin force, bypassing the transition table
    STATUS_FORCED = "status_forced"
    FEEDBACK_ADDED = "feedback_added"
    FEEDBACK_COMMENTED = "feedback_commented"
    FEEDBACK_RESOLVED = "feedback_resolved"
    ADMIN_FIELD_EDIT = "admin_field_edit"
    REGISTRATION_URL_SET = "registration_url_set"
    CHECKLIST_TOGGLE = "checklist_toggle"
    CHECKLIST_REGENERATED = "checklist_regenerated"


class NotificationType(str, Enum):
    """Types of notifications written by lifecycle actions."""

    EVENT_SUBMITTED = "event_submitted"
    CHANGES_REQUESTED = "changes_requested"
    EVENT_APPROVED = "event_approved"
    EVENT_PUBLISHED = "event_published"
    STATUS_CHANGED = "status_changed"
    FEEDBACK_ADDED = "feedback_added"


class ChecklistSection(str, Enum):
    """Checklist sections, in template order."""

    PLANNING = "planning"
    MARKETING = "marketing"
    LOGISTICS = "logistics"


# Field path for threads opened from the general request-changes action
REQUEST_CHANGES_FIELD = "_request_changes"
