"""SQLAlchemy table definitions."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from eventgate.db.base import Base
from eventgate.db.types import JSONType, UTCDateTime, value_enum
from eventgate.models.enums import (
    AuditAction,
    EventStatus,
    NotificationType,
    ThreadStatus,
)


class EventTable(Base):
    """Events table - one row per hosting proposal."""

    __tablename__ = "events"

    event_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    # Ownership (immutable)
    host_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False
    )

    # Status machine
    status: Mapped[EventStatus] = mapped_column(
        value_enum(EventStatus), nullable=False, default=EventStatus.DRAFT
    )

    # Content
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    venue: Mapped[str | None] = mapped_column(Text, nullable=True)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    formats: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    is_public: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    has_hosted_before: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    target_audience: Mapped[str | None] = mapped_column(Text, nullable=True)
    planning_doc_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Post-approval
    luma_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    on_calendar: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Agreement & lifecycle timestamps
    agreement_accepted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Checklist
    checklist_template: Mapped[str | None] = mapped_column(String(50), nullable=True)
    checklist: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_events_host", "host_id", "created_at"),
        Index("idx_events_status", "status", "submitted_at"),
        # Conflict detection scans by date
        Index("idx_events_event_date", "event_date"),
    )


class FeedbackThreadTable(Base):
    """Feedback threads - field-anchored review conversations."""

    __tablename__ = "feedback_threads"

    thread_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    event_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False
    )
    field_path: Mapped[str] = mapped_column(String(100), nullable=False)
    opened_by: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[ThreadStatus] = mapped_column(
        value_enum(ThreadStatus), nullable=False, default=ThreadStatus.OPEN
    )
    reason: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("idx_threads_event", "event_id", "created_at"),
        Index("idx_threads_event_field", "event_id", "field_path"),
        Index("idx_threads_status", "status"),
    )


class FeedbackCommentTable(Base):
    """Feedback comments - immutable messages within a thread."""

    __tablename__ = "feedback_comments"

    comment_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    thread_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("feedback_threads.thread_id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_comments_thread", "thread_id", "created_at"),
    )


class AuditLogTable(Base):
    """Audit log - append-only record of lifecycle and feedback actions."""

    __tablename__ = "audit_log"

    # Autoincrement key doubles as the insertion-order tie-breaker
    entry_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    # No FK: entries outlive deleted drafts
    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    actor_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[AuditAction] = mapped_column(value_enum(AuditAction), nullable=False)
    from_value: Mapped[Any] = mapped_column(JSONType, nullable=True)
    to_value: Mapped[Any] = mapped_column(JSONType, nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_audit_event", "event_id", "created_at"),
        Index("idx_audit_actor", "actor_id", "created_at"),
    )


class NotificationTable(Base):
    """Notifications - messages written for delivery collaborators."""

    __tablename__ = "notifications"

    notification_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[NotificationType] = mapped_column(value_enum(NotificationType), nullable=False)
    event_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("idx_notifications_user", "user_id", "created_at"),
    )


class FormDraftTable(Base):
    """Form drafts - unsent host form state."""

    __tablename__ = "form_drafts"

    draft_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "key", name="uq_form_draft_user_key"),
    )


class FeedbackDraftTable(Base):
    """Feedback drafts - unsent admin feedback per event field."""

    __tablename__ = "feedback_drafts"

    draft_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    field_path: Mapped[str] = mapped_column(String(100), nullable=False)
    author_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(100), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "event_id", "field_path", "author_id", name="uq_feedback_draft_event_field_author"
        ),
    )
