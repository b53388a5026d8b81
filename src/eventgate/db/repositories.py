"""Database repositories for EventGate entities."""

from datetime import datetime
from typing import Any, Iterable
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.auth.models import User
from eventgate.db.tables import (
    AuditLogTable,
    EventTable,
    FeedbackCommentTable,
    FeedbackDraftTable,
    FeedbackThreadTable,
    FormDraftTable,
    NotificationTable,
)
from eventgate.db.upgrade import upgrade_event_record
from eventgate.models import (
    AuditAction,
    AuditEntry,
    Event,
    EventStatus,
    FeedbackComment,
    FeedbackDraft,
    FeedbackThread,
    FormDraft,
    Notification,
    NotificationType,
    Role,
    ThreadStatus,
)
from eventgate.utils.time import utc_now

FALLBACK_USER_NAME = "User"

EVENT_COLUMNS = (
    "event_id",
    "host_id",
    "status",
    "title",
    "short_description",
    "event_date",
    "venue",
    "capacity",
    "formats",
    "is_public",
    "has_hosted_before",
    "target_audience",
    "planning_doc_url",
    "luma_url",
    "on_calendar",
    "agreement_accepted_at",
    "submitted_at",
    "approved_at",
    "checklist_template",
    "checklist",
    "created_at",
    "updated_at",
)


def _display_name(name: str | None) -> str:
    return name or FALLBACK_USER_NAME


class EventRepository:
    """Repository for event operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        host_id: UUID,
        title: str | None = None,
        short_description: str | None = None,
        capacity: int = 50,
    ) -> Event:
        """Create a new draft event with default content."""
        now = utc_now()
        row = EventTable(
            event_id=uuid4(),
            host_id=host_id,
            status=EventStatus.DRAFT,
            title=title or "",
            short_description=short_description or "",
            venue="",
            capacity=capacity,
            formats=[],
            is_public=True,
            has_hosted_before=False,
            target_audience="",
            on_calendar=False,
            checklist_template="general",
            checklist=[],
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        await self.session.flush()
        return self._row_to_model(row)

    async def get(self, event_id: UUID) -> Event | None:
        """Get an event by ID."""
        result = await self.session.execute(
            select(EventTable)
            .where(EventTable.event_id == event_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def list_by_host(self, host_id: UUID, limit: int | None = None) -> list[Event]:
        """List a host's events, newest first."""
        query = (
            select(EventTable)
            .where(EventTable.host_id == host_id)
            .order_by(EventTable.created_at.desc(), EventTable.event_id)
        )
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return [self._row_to_model(r) for r in result.scalars().all()]

    async def count_by_status(self, host_id: UUID) -> dict[EventStatus, int]:
        """Count a host's events grouped by status."""
        result = await self.session.execute(
            select(EventTable.status, func.count())
            .where(EventTable.host_id == host_id)
            .group_by(EventTable.status)
        )
        return {EventStatus(status): count for status, count in result.all()}

    async def list_by_statuses(
        self,
        statuses: Iterable[EventStatus],
        limit: int | None = None,
    ) -> list[tuple[Event, str]]:
        """List events in the given statuses with host names, oldest submission first."""
        query = (
            select(EventTable, User.name)
            .outerjoin(User, User.id == EventTable.host_id)
            .where(EventTable.status.in_(list(statuses)))
            .order_by(
                EventTable.submitted_at.is_(None),
                EventTable.submitted_at.asc(),
                EventTable.created_at.asc(),
            )
        )
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return [(self._row_to_model(row), _display_name(name)) for row, name in result.all()]

    async def list_scheduled_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[tuple[Event, str]]:
        """List events holding a venue slot between start and end, with host names."""
        result = await self.session.execute(
            select(EventTable, User.name)
            .outerjoin(User, User.id == EventTable.host_id)
            .where(
                EventTable.status.in_(list(EventStatus.scheduled_states())),
                EventTable.event_date.is_not(None),
                EventTable.event_date >= start,
                EventTable.event_date <= end,
            )
        )
        return [(self._row_to_model(row), _display_name(name)) for row, name in result.all()]

    async def update_fields(self, event_id: UUID, values: dict[str, Any]) -> Event | None:
        """Patch content fields unconditionally."""
        values = {**values, "updated_at": utc_now()}
        await self.session.execute(
            update(EventTable).where(EventTable.event_id == event_id).values(**values)
        )
        return await self.get(event_id)

    async def update_in_status(
        self,
        event_id: UUID,
        expected_status: EventStatus,
        values: dict[str, Any],
    ) -> bool:
        """
        Patch fields only while the event is still in expected_status.

        Returns False if the row moved (or vanished) since it was read.
        """
        values = {**values, "updated_at": utc_now()}
        result = await self.session.execute(
            update(EventTable)
            .where(
                EventTable.event_id == event_id,
                EventTable.status == expected_status,
            )
            .values(**values)
        )
        return result.rowcount == 1

    async def transition(
        self,
        event_id: UUID,
        expected_status: EventStatus,
        new_status: EventStatus,
        values: dict[str, Any] | None = None,
    ) -> bool:
        """Conditionally move an event from expected_status to new_status."""
        return await self.update_in_status(
            event_id, expected_status, {**(values or {}), "status": new_status}
        )

    async def update_if_unchanged(
        self,
        event_id: UUID,
        expected_updated_at: datetime,
        values: dict[str, Any],
    ) -> bool:
        """Patch fields only if nobody wrote the row since it was read."""
        values = {**values, "updated_at": utc_now()}
        result = await self.session.execute(
            update(EventTable)
            .where(
                EventTable.event_id == event_id,
                EventTable.updated_at == expected_updated_at,
            )
            .values(**values)
        )
        return result.rowcount == 1

    async def delete_in_status(self, event_id: UUID, expected_status: EventStatus) -> bool:
        """Hard-delete an event only while it is in expected_status."""
        result = await self.session.execute(
            delete(EventTable).where(
                EventTable.event_id == event_id,
                EventTable.status == expected_status,
            )
        )
        return result.rowcount == 1

    def _row_to_model(self, row: EventTable) -> Event:
        """Convert database row to model through the upgrade boundary."""
        return upgrade_event_record({name: getattr(row, name) for name in EVENT_COLUMNS})


class FeedbackRepository:
    """Repository for feedback threads and comments."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_thread(
        self,
        event_id: UUID,
        field_path: str,
        opened_by: UUID,
        reason: str | None = None,
    ) -> FeedbackThread:
        """Create an open thread with no comments."""
        row = FeedbackThreadTable(
            thread_id=uuid4(),
            event_id=event_id,
            field_path=field_path,
            opened_by=opened_by,
            status=ThreadStatus.OPEN,
            reason=reason,
            created_at=utc_now(),
        )
        self.session.add(row)
        await self.session.flush()
        return self._thread_to_model(row, [])

    async def add_comment(self, thread_id: UUID, author_id: UUID, message: str) -> FeedbackComment:
        """Append an immutable comment to a thread."""
        row = FeedbackCommentTable(
            comment_id=uuid4(),
            thread_id=thread_id,
            author_id=author_id,
            message=message,
            created_at=utc_now(),
        )
        self.session.add(row)
        await self.session.flush()

        names = await UserRepository(self.session).names_for([author_id])
        return self._comment_to_model(row, names.get(author_id))

    async def get_thread(self, thread_id: UUID) -> FeedbackThread | None:
        """Get a thread with its comments."""
        result = await self.session.execute(
            select(FeedbackThreadTable)
            .where(FeedbackThreadTable.thread_id == thread_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if not row:
            return None
        comments = await self._comments_for([row.thread_id])
        return self._thread_to_model(row, comments.get(row.thread_id, []))

    async def list_threads(self, event_id: UUID) -> list[FeedbackThread]:
        """List an event's threads, oldest first, with comments."""
        result = await self.session.execute(
            select(FeedbackThreadTable)
            .where(FeedbackThreadTable.event_id == event_id)
            .order_by(FeedbackThreadTable.created_at.asc(), FeedbackThreadTable.thread_id)
        )
        rows = list(result.scalars().all())
        comments = await self._comments_for([r.thread_id for r in rows])
        return [self._thread_to_model(r, comments.get(r.thread_id, [])) for r in rows]

    async def resolve(self, thread_id: UUID) -> bool:
        """Conditionally resolve an open thread."""
        result = await self.session.execute(
            update(FeedbackThreadTable)
            .where(
                FeedbackThreadTable.thread_id == thread_id,
                FeedbackThreadTable.status == ThreadStatus.OPEN,
            )
            .values(status=ThreadStatus.RESOLVED, resolved_at=utc_now())
        )
        return result.rowcount == 1

    async def lock_status(self, thread_id: UUID) -> ThreadStatus | None:
        """Read a thread's status under a row lock (no-op lock on SQLite)."""
        result = await self.session.execute(
            select(FeedbackThreadTable.status)
            .where(FeedbackThreadTable.thread_id == thread_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def count_open(self, event_id: UUID) -> int:
        """Count open threads on an event."""
        result = await self.session.execute(
            select(func.count())
            .select_from(FeedbackThreadTable)
            .where(
                FeedbackThreadTable.event_id == event_id,
                FeedbackThreadTable.status == ThreadStatus.OPEN,
            )
        )
        return result.scalar_one()

    async def count_open_by_event(self, event_ids: list[UUID]) -> dict[UUID, int]:
        """Count open threads for many events in one query."""
        if not event_ids:
            return {}
        result = await self.session.execute(
            select(FeedbackThreadTable.event_id, func.count())
            .where(
                FeedbackThreadTable.event_id.in_(event_ids),
                FeedbackThreadTable.status == ThreadStatus.OPEN,
            )
            .group_by(FeedbackThreadTable.event_id)
        )
        return {event_id: count for event_id, count in result.all()}

    async def _comments_for(self, thread_ids: list[UUID]) -> dict[UUID, list[FeedbackComment]]:
        if not thread_ids:
            return {}
        result = await self.session.execute(
            select(FeedbackCommentTable, User.name)
            .outerjoin(User, User.id == FeedbackCommentTable.author_id)
            .where(FeedbackCommentTable.thread_id.in_(thread_ids))
            .order_by(FeedbackCommentTable.created_at.asc(), FeedbackCommentTable.comment_id)
        )
        by_thread: dict[UUID, list[FeedbackComment]] = {}
        for row, name in result.all():
            by_thread.setdefault(row.thread_id, []).append(self._comment_to_model(row, name))
        return by_thread

    def _comment_to_model(self, row: FeedbackCommentTable, author_name: str | None) -> FeedbackComment:
        return FeedbackComment(
            comment_id=row.comment_id,
            thread_id=row.thread_id,
            author_id=row.author_id,
            author_name=_display_name(author_name),
            message=row.message,
            created_at=row.created_at,
        )

    def _thread_to_model(
        self, row: FeedbackThreadTable, comments: list[FeedbackComment]
    ) -> FeedbackThread:
        return FeedbackThread(
            thread_id=row.thread_id,
            event_id=row.event_id,
            field_path=row.field_path,
            opened_by=row.opened_by,
            status=row.status,
            reason=row.reason,
            created_at=row.created_at,
            resolved_at=row.resolved_at,
            comments=comments,
        )


class AuditRepository:
    """
    Append-only repository for the audit log.

    No update or delete methods.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(
        self,
        event_id: UUID,
        actor_id: UUID,
        action: AuditAction,
        from_value: Any = None,
        to_value: Any = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Record one action against one event."""
        row = AuditLogTable(
            event_id=event_id,
            actor_id=actor_id,
            action=action,
            from_value=from_value,
            to_value=to_value,
            metadata_=metadata or {},
            created_at=utc_now(),
        )
        self.session.add(row)
        await self.session.flush()

        names = await UserRepository(self.session).names_for([actor_id])
        return self._row_to_model(row, names.get(actor_id))

    async def list_for_event(self, event_id: UUID, limit: int | None = None) -> list[AuditEntry]:
        """List an event's entries, newest first, with actor names."""
        query = (
            select(AuditLogTable, User.name)
            .outerjoin(User, User.id == AuditLogTable.actor_id)
            .where(AuditLogTable.event_id == event_id)
            .order_by(AuditLogTable.created_at.desc(), AuditLogTable.entry_id.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return [self._row_to_model(row, name) for row, name in result.all()]

    def _row_to_model(self, row: AuditLogTable, actor_name: str | None) -> AuditEntry:
        return AuditEntry(
            entry_id=row.entry_id,
            event_id=row.event_id,
            actor_id=row.actor_id,
            actor_name=_display_name(actor_name),
            action=row.action,
            from_value=row.from_value,
            to_value=row.to_value,
            metadata=row.metadata_ or {},
            created_at=row.created_at,
        )


class NotificationRepository:
    """Repository for notification records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: UUID,
        type: NotificationType,
        message: str,
        event_id: UUID | None = None,
    ) -> Notification:
        """Write one unread notification."""
        row = NotificationTable(
            notification_id=uuid4(),
            user_id=user_id,
            type=type,
            event_id=event_id,
            message=message,
            created_at=utc_now(),
        )
        self.session.add(row)
        await self.session.flush()
        return self._row_to_model(row)

    async def create_many(
        self,
        user_ids: Iterable[UUID],
        type: NotificationType,
        message: str,
        event_id: UUID | None = None,
    ) -> list[Notification]:
        """Write the same notification to several users."""
        return [
            await self.create(user_id, type, message, event_id)
            for user_id in user_ids
        ]

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        """List a user's notifications, newest first."""
        query = select(NotificationTable).where(NotificationTable.user_id == user_id)
        if unread_only:
            query = query.where(NotificationTable.read_at.is_(None))
        query = query.order_by(
            NotificationTable.created_at.desc(), NotificationTable.notification_id
        ).limit(limit)
        result = await self.session.execute(query)
        return [self._row_to_model(r) for r in result.scalars().all()]

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(NotificationTable)
            .where(
                NotificationTable.user_id == user_id,
                NotificationTable.read_at.is_(None),
            )
        )
        return result.scalar_one()

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification | None:
        """Mark one of the user's notifications read; first read time wins."""
        result = await self.session.execute(
            select(NotificationTable).where(
                NotificationTable.notification_id == notification_id,
                NotificationTable.user_id == user_id,
            )
        )
        row = result.scalar_one_or_none()
        if not row:
            return None
        if row.read_at is None:
            row.read_at = utc_now()
            await self.session.flush()
        return self._row_to_model(row)

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification read; returns how many changed."""
        result = await self.session.execute(
            update(NotificationTable)
            .where(
                NotificationTable.user_id == user_id,
                NotificationTable.read_at.is_(None),
            )
            .values(read_at=utc_now())
        )
        return result.rowcount

    def _row_to_model(self, row: NotificationTable) -> Notification:
        return Notification(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=row.type,
            event_id=row.event_id,
            message=row.message,
            created_at=row.created_at,
            read_at=row.read_at,
        )


class DraftRepository:
    """Repository for form and feedback drafts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_form(self, user_id: UUID, key: str) -> FormDraft | None:
        row = await self._form_row(user_id, key)
        return self._form_to_model(row) if row else None

    async def upsert_form(self, user_id: UUID, key: str, data: dict[str, Any]) -> FormDraft:
        """Create or replace a form draft."""
        now = utc_now()
        existing = await self._form_row(user_id, key)

        if existing:
            existing.data = data
            existing.updated_at = now
        else:
            existing = FormDraftTable(
                draft_id=uuid4(),
                user_id=user_id,
                key=key,
                data=data,
                updated_at=now,
            )
            self.session.add(existing)

        await self.session.flush()
        return self._form_to_model(existing)

    async def clear_form(self, user_id: UUID, key: str) -> bool:
        result = await self.session.execute(
            delete(FormDraftTable).where(
                FormDraftTable.user_id == user_id,
                FormDraftTable.key == key,
            )
        )
        return result.rowcount > 0

    async def get_feedback(
        self, event_id: UUID, field_path: str, author_id: UUID
    ) -> FeedbackDraft | None:
        row = await self._feedback_row(event_id, field_path, author_id)
        return self._feedback_to_model(row) if row else None

    async def upsert_feedback(
        self,
        event_id: UUID,
        field_path: str,
        author_id: UUID,
        message: str,
        reason: str | None = None,
    ) -> FeedbackDraft:
        """Create or replace a feedback draft."""
        now = utc_now()
        existing = await self._feedback_row(event_id, field_path, author_id)

        if existing:
            existing.message = message
            existing.reason = reason
            existing.updated_at = now
        else:
            existing = FeedbackDraftTable(
                draft_id=uuid4(),
                event_id=event_id,
                field_path=field_path,
                author_id=author_id,
                reason=reason,
                message=message,
                updated_at=now,
            )
            self.session.add(existing)

        await self.session.flush()
        return self._feedback_to_model(existing)

    async def clear_feedback(self, event_id: UUID, field_path: str, author_id: UUID) -> bool:
        result = await self.session.execute(
            delete(FeedbackDraftTable).where(
                FeedbackDraftTable.event_id == event_id,
                FeedbackDraftTable.field_path == field_path,
                FeedbackDraftTable.author_id == author_id,
            )
        )
        return result.rowcount > 0

    async def _form_row(self, user_id: UUID, key: str) -> FormDraftTable | None:
        result = await self.session.execute(
            select(FormDraftTable).where(
                FormDraftTable.user_id == user_id,
                FormDraftTable.key == key,
            )
        )
        return result.scalar_one_or_none()

    async def _feedback_row(
        self, event_id: UUID, field_path: str, author_id: UUID
    ) -> FeedbackDraftTable | None:
        result = await self.session.execute(
            select(FeedbackDraftTable).where(
                FeedbackDraftTable.event_id == event_id,
                FeedbackDraftTable.field_path == field_path,
                FeedbackDraftTable.author_id == author_id,
            )
        )
        return result.scalar_one_or_none()

    def _form_to_model(self, row: FormDraftTable) -> FormDraft:
        return FormDraft(
            draft_id=row.draft_id,
            user_id=row.user_id,
            key=row.key,
            data=row.data or {},
            updated_at=row.updated_at,
        )

    def _feedback_to_model(self, row: FeedbackDraftTable) -> FeedbackDraft:
        return FeedbackDraft(
            draft_id=row.draft_id,
            event_id=row.event_id,
            field_path=row.field_path,
            author_id=row.author_id,
            reason=row.reason,
            message=row.message or "",
            updated_at=row.updated_at,
        )


class UserRepository:
    """Repository for user accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: UUID) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_external_id(self, external_id: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def upsert_from_identity(
        self,
        external_id: str,
        name: str,
        email: str | None,
        role: Role,
    ) -> User:
        """Create or refresh a user from identity-provider claims."""
        existing = await self.get_by_external_id(external_id)

        if existing:
            existing.name = name or existing.name
            existing.email = email or existing.email
            existing.role = role
            existing.updated_at = utc_now()
        else:
            existing = User(
                id=uuid4(),
                external_id=external_id,
                name=name or "",
                email=email,
                role=role,
            )
            self.session.add(existing)

        await self.session.flush()
        return existing

    async def update_profile(self, user_id: UUID, values: dict[str, Any]) -> User | None:
        """Patch profile columns on a user."""
        user = await self.get(user_id)
        if not user:
            return None
        for key, value in values.items():
            setattr(user, key, value)
        user.updated_at = utc_now()
        await self.session.flush()
        return user

    async def list_admin_ids(self) -> list[UUID]:
        """IDs of every active admin."""
        result = await self.session.execute(
            select(User.id)
            .where(User.role == Role.ADMIN, User.is_active.is_(True))
            .order_by(User.created_at, User.id)
        )
        return list(result.scalars().all())

    async def names_for(self, user_ids: Iterable[UUID]) -> dict[UUID, str]:
        """Display names for a set of users; missing users are omitted."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self.session.execute(
            select(User.id, User.name).where(User.id.in_(ids))
        )
        return {user_id: _display_name(name) for user_id, name in result.all()}
