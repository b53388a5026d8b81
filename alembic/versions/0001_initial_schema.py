"""Initial EventGate schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create base tables and enums."""
    bind = op.get_bind()

    role = sa.Enum("host", "admin", name="role")
    eventstatus = sa.Enum(
        "draft",
        "submitted",
        "changes_requested",
        "resubmitted",
        "approved",
        "published",
        name="eventstatus",
    )
    threadstatus = sa.Enum("open", "resolved", name="threadstatus")
    auditaction = sa.Enum(
        "status_change",
        "status_forced",
        "feedback_added",
        "feedback_commented",
        "feedback_resolved",
        "admin_field_edit",
        "registration_url_set",
        "checklist_toggle",
        "checklist_regenerated",
        name="auditaction",
    )
    notificationtype = sa.Enum(
        "event_submitted",
        "changes_requested",
        "event_approved",
        "event_published",
        "status_changed",
        "feedback_added",
        name="notificationtype",
    )

    for enum_type in (role, eventstatus, threadstatus, auditaction, notificationtype):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "auth_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("role", role, nullable=False, server_default="host"),
        sa.Column("org_name", sa.String(length=255), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("socials", postgresql.JSONB, nullable=True),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("external_id", name="uq_auth_users_external_id"),
        sa.UniqueConstraint("email", name="uq_auth_users_email"),
    )
    op.create_index("idx_auth_users_role", "auth_users", ["role"])

    op.create_table(
        "auth_api_keys",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("auth_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key_prefix", sa.String(length=64), nullable=False),
        sa.Column("key_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("scopes", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used", sa.DateTime(timezone=True), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("key_hash", name="uq_auth_api_keys_hash"),
    )
    op.create_index("idx_auth_api_keys_user", "auth_api_keys", ["user_id"])
    op.create_index("idx_auth_api_keys_prefix", "auth_api_keys", ["key_prefix"])

    op.create_table(
        "events",
        sa.Column("event_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "host_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("auth_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", eventstatus, nullable=False, server_default="draft"),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("short_description", sa.Text(), nullable=True),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("venue", sa.Text(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("formats", postgresql.JSONB, nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=True),
        sa.Column("has_hosted_before", sa.Boolean(), nullable=True),
        sa.Column("target_audience", sa.Text(), nullable=True),
        sa.Column("planning_doc_url", sa.Text(), nullable=True),
        sa.Column("luma_url", sa.Text(), nullable=True),
        sa.Column("on_calendar", sa.Boolean(), nullable=True),
        sa.Column("agreement_accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checklist_template", sa.String(length=50), nullable=True),
        sa.Column("checklist", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_events_host", "events", ["host_id", "created_at"])
    op.create_index("idx_events_status", "events", ["status", "submitted_at"])
    op.create_index("idx_events_event_date", "events", ["event_date"])

    op.create_table(
        "feedback_threads",
        sa.Column("thread_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "event_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("events.event_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("field_path", sa.String(length=100), nullable=False),
        sa.Column("opened_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", threadstatus, nullable=False, server_default="open"),
        sa.Column("reason", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_threads_event", "feedback_threads", ["event_id", "created_at"])
    op.create_index("idx_threads_event_field", "feedback_threads", ["event_id", "field_path"])
    op.create_index("idx_threads_status", "feedback_threads", ["status"])

    op.create_table(
        "feedback_comments",
        sa.Column("comment_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "thread_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("feedback_threads.thread_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_comments_thread", "feedback_comments", ["thread_id", "created_at"])

    # No FK to events: entries outlive deleted drafts
    op.create_table(
        "audit_log",
        sa.Column("entry_id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", auditaction, nullable=False),
        sa.Column("from_value", postgresql.JSONB, nullable=True),
        sa.Column("to_value", postgresql.JSONB, nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_audit_event", "audit_log", ["event_id", "created_at"])
    op.create_index("idx_audit_actor", "audit_log", ["actor_id", "created_at"])

    op.create_table(
        "notifications",
        sa.Column("notification_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", notificationtype, nullable=False),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id", "created_at"])

    op.create_table(
        "form_drafts",
        sa.Column("draft_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("data", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "key", name="uq_form_draft_user_key"),
    )

    op.create_table(
        "feedback_drafts",
        sa.Column("draft_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("field_path", sa.String(length=100), nullable=False),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reason", sa.String(length=100), nullable=True),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "event_id", "field_path", "author_id", name="uq_feedback_draft_event_field_author"
        ),
    )


def downgrade() -> None:
    """Drop all tables and enums."""
    bind = op.get_bind()

    op.drop_table("feedback_drafts")
    op.drop_table("form_drafts")
    op.drop_index("idx_notifications_user", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_audit_actor", table_name="audit_log")
    op.drop_index("idx_audit_event", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("idx_comments_thread", table_name="feedback_comments")
    op.drop_table("feedback_comments")
    op.drop_index("idx_threads_status", table_name="feedback_threads")
    op.drop_index("idx_threads_event_field", table_name="feedback_threads")
    op.drop_index("idx_threads_event", table_name="feedback_threads")
    op.drop_table("feedback_threads")
    op.drop_index("idx_events_event_date", table_name="events")
    op.drop_index("idx_events_status", table_name="events")
    op.drop_index("idx_events_host", table_name="events")
    op.drop_table("events")
    op.drop_index("idx_auth_api_keys_prefix", table_name="auth_api_keys")
    op.drop_index("idx_auth_api_keys_user", table_name="auth_api_keys")
    op.drop_table("auth_api_keys")
    op.drop_index("idx_auth_users_role", table_name="auth_users")
    op.drop_table("auth_users")

    sa.Enum(name="notificationtype").drop(bind, checkfirst=True)
    sa.Enum(name="auditaction").drop(bind, checkfirst=True)
    sa.Enum(name="threadstatus").drop(bind, checkfirst=True)
    sa.Enum(name="eventstatus").drop(bind, checkfirst=True)
    sa.Enum(name="role").drop(bind, checkfirst=True)
