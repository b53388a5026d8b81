"""EventGate core engine - canonical lifecycle, review and feedback operations."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.auth.context import AuthType, CallerContext
from eventgate.auth.models import User
from eventgate.checklist import generate_checklist, select_template
from eventgate.config import settings
from eventgate.conflicts import find_venue_conflicts
from eventgate.db.repositories import (
    AuditRepository,
    DraftRepository,
    EventRepository,
    FeedbackRepository,
    NotificationRepository,
    UserRepository,
)
from eventgate.engine.errors import (
    ChecklistItemNotFound,
    EventNotFound,
    InvalidState,
    NotificationNotFound,
    PreconditionFailed,
    ThreadNotFound,
    Unauthenticated,
    Unauthorized,
    ValidationFailed,
)
from eventgate.engine.lifecycle import LifecycleAction, require_role, require_transition
from eventgate.engine.validation import normalize_registration_url, require_submittable
from eventgate.models import (
    REQUEST_CHANGES_FIELD,
    AuditAction,
    AuditEntry,
    Event,
    EventStats,
    EventStatus,
    EventSummary,
    FeedbackComment,
    FeedbackDraft,
    FeedbackThread,
    FormDraft,
    Notification,
    NotificationType,
    ReviewQueueEntry,
    Role,
    ThreadStatus,
    VenueConflict,
)
from eventgate.observability.metrics import metrics
from eventgate.utils.time import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# Content fields a host may patch while the event is editable
HOST_EDITABLE_FIELDS = frozenset(
    {
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
        "agreement_accepted",
        "agreement_accepted_at",
    }
)

ADMIN_EDITABLE_FIELDS = HOST_EDITABLE_FIELDS | {"on_calendar"}

TEXT_FIELDS = frozenset({"title", "short_description", "venue", "target_audience"})
BOOL_FIELDS = frozenset({"is_public", "has_hosted_before", "on_calendar"})

REVIEW_QUEUE_ALL = "all"


def _jsonable(value: Any) -> Any:
    """Render a field value for JSON audit columns."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _label(event: Event) -> str:
    return f'"{event.title}"' if event.title else "Untitled event"


def _to_summary(event: Event) -> EventSummary:
    return EventSummary(
        event_id=event.event_id,
        title=event.title,
        short_description=event.short_description,
        event_date=event.event_date,
        venue=event.venue,
        status=event.status,
        capacity=event.capacity,
        formats=event.formats,
        submitted_at=event.submitted_at,
        created_at=event.created_at,
    )


async def resolve_caller(
    session: AsyncSession,
    external_id: str | None,
    auth_type: AuthType = "internal",
) -> CallerContext | None:
    """Map an identity-provider subject to a caller context, if the user is active."""
    if not external_id:
        return None
    user = await UserRepository(session).get_by_external_id(external_id)
    if not user or not user.is_active:
        return None
    return CallerContext.from_user(user, auth_type)


class EventGateEngine:
    """Core engine implementing canonical EventGate operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.events = EventRepository(session)
        self.feedback = FeedbackRepository(session)
        self.audit = AuditRepository(session)
        self.notifications = NotificationRepository(session)
        self.drafts = DraftRepository(session)
        self.users = UserRepository(session)

    # =========================================================================
    # Caller and loading helpers
    # =========================================================================

    def _require_caller(self, caller: CallerContext | None) -> CallerContext:
        if caller is None:
            raise Unauthenticated()
        return caller

    def _require_admin(self, caller: CallerContext | None) -> CallerContext:
        caller = self._require_caller(caller)
        if not caller.is_admin:
            raise Unauthorized("Admin role required")
        return caller

    def _require_owner(self, caller: CallerContext, event: Event) -> None:
        if not event.is_owned_by(caller.user_id):
            raise Unauthorized("Caller does not own this event")

    def _require_owner_or_admin(self, caller: CallerContext, event: Event) -> None:
        if not caller.is_admin:
            self._require_owner(caller, event)

    async def _get_event_or_raise(self, event_id: UUID) -> Event:
        event = await self.events.get(event_id)
        if not event:
            raise EventNotFound(str(event_id))
        return event

    async def _get_thread_or_raise(self, thread_id: UUID) -> FeedbackThread:
        thread = await self.feedback.get_thread(thread_id)
        if not thread:
            raise ThreadNotFound(str(thread_id))
        return thread

    async def _load_for_action(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        action: LifecycleAction,
    ) -> tuple[CallerContext, Event, EventStatus]:
        """
        Run the shared check sequence for a validated lifecycle operation.

        Order: caller resolved, role allowed, event exists, ownership (hosts),
        state legal. Returns the caller, the event and the target status.
        """
        caller = self._require_caller(caller)
        require_role(caller.role, action)
        event = await self._get_event_or_raise(event_id)
        if not caller.is_admin:
            self._require_owner(caller, event)
        target = require_transition(event.status, action)
        return caller, event, target

    def _lost_race(self, event: Event, action: str) -> InvalidState:
        metrics.record_operation("event.transition", action, "conflict")
        return InvalidState(
            event.status.value,
            action,
            f"Event {event.event_id} changed while trying to {action}; reload and retry",
        )

    async def _apply_transition(
        self,
        caller: CallerContext,
        event: Event,
        action: LifecycleAction,
        target: EventStatus,
        values: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Event:
        """Conditionally move the event and record the status change. Call inside a savepoint."""
        moved = await self.events.transition(event.event_id, event.status, target, values)
        if not moved:
            raise self._lost_race(event, action.value)

        await self.audit.append(
            event_id=event.event_id,
            actor_id=caller.user_id,
            action=AuditAction.STATUS_CHANGE,
            from_value=event.status.value,
            to_value=target.value,
            metadata={"action": action.value, **(metadata or {})},
        )
        updated = await self._get_event_or_raise(event.event_id)

        logger.info(
            "Event %s %s: %s -> %s by %s",
            event.event_id,
            action.value,
            event.status.value,
            target.value,
            caller.user_id,
        )
        metrics.record_operation("event.transition", action.value)
        return updated

    async def _notify_host(
        self, event: Event, type: NotificationType, message: str
    ) -> Notification:
        return await self.notifications.create(
            user_id=event.host_id,
            type=type,
            message=message,
            event_id=event.event_id,
        )

    def _coerce_fields(
        self, fields: dict[str, Any], allowed: frozenset[str]
    ) -> dict[str, Any]:
        """
        Turn a partial field patch into column values.

        None means "no change" and is dropped. Unknown or malformed fields
        are all reported together.
        """
        unknown = sorted(set(fields) - allowed)
        if unknown:
            raise ValidationFailed(unknown, f"Unknown fields: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        problems: list[str] = []
        for name, value in fields.items():
            if value is None:
                continue
            if name == "event_date":
                when = parse_timestamp(value)
                if when is None:
                    problems.append(name)
                    continue
                values[name] = when
            elif name == "agreement_accepted_at":
                when = parse_timestamp(value)
                if when is None:
                    problems.append(name)
                    continue
                values[name] = when
            elif name == "agreement_accepted":
                values["agreement_accepted_at"] = utc_now() if value else None
            elif name == "capacity":
                if isinstance(value, bool) or not isinstance(value, int):
                    problems.append(name)
                    continue
                values[name] = value
            elif name == "formats":
                if isinstance(value, str) or not isinstance(value, Iterable):
                    problems.append(name)
                    continue
                values[name] = [str(tag).strip() for tag in value if str(tag).strip()]
            elif name in BOOL_FIELDS:
                values[name] = bool(value)
            elif name in TEXT_FIELDS:
                values[name] = str(value)
            else:
                # URLs: an empty string clears the link
                values[name] = str(value).strip() or None

        if problems:
            raise ValidationFailed(problems)
        return values

    # =========================================================================
    # Event reads
    # =========================================================================

    async def get_event(self, caller: CallerContext | None, event_id: UUID) -> Event:
        """Get a full event. Non-owners see NotFound so existence is not leaked."""
        caller = self._require_caller(caller)
        event = await self.events.get(event_id)
        if not event or not (caller.is_admin or event.is_owned_by(caller.user_id)):
            raise EventNotFound(str(event_id))
        return event

    async def list_my_events(
        self, caller: CallerContext | None, limit: int | None = None
    ) -> list[EventSummary]:
        """List the caller's own events, newest first."""
        caller = self._require_caller(caller)
        limit = min(limit or settings.default_list_limit, settings.max_list_limit)
        events = await self.events.list_by_host(caller.user_id, limit=limit)
        return [_to_summary(e) for e in events]

    async def get_event_stats(self, caller: CallerContext | None) -> EventStats:
        """Dashboard counts for the caller's events."""
        caller = self._require_caller(caller)
        counts = await self.events.count_by_status(caller.user_id)
        return EventStats(
            total_events=sum(counts.values()),
            draft_count=counts.get(EventStatus.DRAFT, 0),
            submitted_count=counts.get(EventStatus.SUBMITTED, 0)
            + counts.get(EventStatus.RESUBMITTED, 0),
            changes_requested_count=counts.get(EventStatus.CHANGES_REQUESTED, 0),
            approved_count=counts.get(EventStatus.APPROVED, 0),
            published_count=counts.get(EventStatus.PUBLISHED, 0),
        )

    async def get_review_queue(
        self,
        caller: CallerContext | None,
        statuses: Iterable[EventStatus | str] | str | None = None,
        limit: int | None = None,
    ) -> list[ReviewQueueEntry]:
        """
        List events awaiting review, oldest submission first.

        Defaults to submitted and resubmitted; "all" means the same pair.
        """
        self._require_admin(caller)

        if statuses is None or statuses == REVIEW_QUEUE_ALL:
            wanted = EventStatus.under_review_states()
        else:
            if isinstance(statuses, str):
                statuses = [statuses]
            raw = list(statuses)
            if REVIEW_QUEUE_ALL in raw:
                wanted = EventStatus.under_review_states()
            else:
                try:
                    wanted = {EventStatus(s) for s in raw}
                except ValueError:
                    raise ValidationFailed(["statuses"], f"Unknown status in {raw}")

        limit = min(limit or settings.max_list_limit, settings.max_list_limit)
        rows = await self.events.list_by_statuses(wanted, limit=limit)
        open_counts = await self.feedback.count_open_by_event([e.event_id for e, _ in rows])

        entries = []
        for event, host_name in rows:
            open_count = open_counts.get(event.event_id, 0)
            entries.append(
                ReviewQueueEntry(
                    event_id=event.event_id,
                    title=event.title,
                    status=event.status,
                    event_date=event.event_date,
                    venue=event.venue,
                    host_id=event.host_id,
                    host_name=host_name,
                    submitted_at=event.submitted_at,
                    open_thread_count=open_count,
                    has_open_threads=open_count > 0,
                )
            )
        return entries

    # =========================================================================
    # Host operations
    # =========================================================================

    async def create_event(
        self,
        caller: CallerContext | None,
        title: str | None = None,
        short_description: str | None = None,
    ) -> UUID:
        """Create a new draft owned by the caller. Returns the event id."""
        caller = self._require_caller(caller)
        require_role(caller.role, LifecycleAction.CREATE)

        event = await self.events.create(
            host_id=caller.user_id,
            title=title,
            short_description=short_description,
            capacity=settings.default_capacity,
        )

        logger.info("Event %s created by %s", event.event_id, caller.user_id)
        metrics.record_operation("event", "create")
        return event.event_id

    async def update_event(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        **fields: Any,
    ) -> Event:
        """
        Patch content fields on an editable event.

        Omitted or None fields are left unchanged. Submission bounds are not
        checked here so incomplete drafts can be saved.
        """
        caller, event, _ = await self._load_for_action(caller, event_id, LifecycleAction.UPDATE)
        values = self._coerce_fields(fields, HOST_EDITABLE_FIELDS)
        if not values:
            return event

        async with self.session.begin_nested():  # SAVEPOINT
            if not await self.events.update_in_status(event_id, event.status, values):
                raise self._lost_race(event, LifecycleAction.UPDATE.value)

        metrics.record_operation("event", "update")
        return await self._get_event_or_raise(event_id)

    async def submit_event(self, caller: CallerContext | None, event_id: UUID) -> Event:
        """
        Submit a draft or resubmit after requested changes.

        Validation reports every missing or invalid field at once.
        """
        caller, event, target = await self._load_for_action(
            caller, event_id, LifecycleAction.SUBMIT
        )
        require_submittable(event)

        async with self.session.begin_nested():  # SAVEPOINT
            updated = await self._apply_transition(
                caller,
                event,
                LifecycleAction.SUBMIT,
                target,
                values={"submitted_at": utc_now()},
            )

            verb = "resubmitted" if target == EventStatus.RESUBMITTED else "submitted"
            admin_ids = await self.users.list_admin_ids()
            await self.notifications.create_many(
                admin_ids,
                NotificationType.EVENT_SUBMITTED,
                f"{_label(updated)} was {verb} for review",
                event_id=event_id,
            )

        return updated

    async def delete_event(self, caller: CallerContext | None, event_id: UUID) -> None:
        """Hard-delete a draft. Any other status is an irreversible decision."""
        caller, event, _ = await self._load_for_action(caller, event_id, LifecycleAction.DELETE)

        async with self.session.begin_nested():  # SAVEPOINT
            if not await self.events.delete_in_status(event_id, event.status):
                raise self._lost_race(event, LifecycleAction.DELETE.value)

        logger.info("Event %s deleted by %s", event_id, caller.user_id)
        metrics.record_operation("event", "delete")

    async def set_registration_url(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        url: str,
    ) -> Event:
        """
        Set the external registration URL.

        Hosts may set it on their own approved or published events; admins
        may set it at any time.
        """
        caller = self._require_caller(caller)
        action = LifecycleAction.SET_REGISTRATION_URL
        if not caller.is_admin:
            require_role(caller.role, action)
        event = await self._get_event_or_raise(event_id)
        if not caller.is_admin:
            self._require_owner(caller, event)
            require_transition(event.status, action)
        url = normalize_registration_url(url)

        async with self.session.begin_nested():  # SAVEPOINT
            if not await self.events.update_in_status(event_id, event.status, {"luma_url": url}):
                raise self._lost_race(event, action.value)
            await self.audit.append(
                event_id=event_id,
                actor_id=caller.user_id,
                action=AuditAction.REGISTRATION_URL_SET,
                from_value=event.luma_url,
                to_value=url,
            )

        logger.info("Event %s registration URL set by %s", event_id, caller.user_id)
        metrics.record_operation("event", action.value)
        return await self._get_event_or_raise(event_id)

    async def toggle_checklist_item(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        item_id: str,
        completed: bool | None = None,
    ) -> Event:
        """Flip an item's completed flag, or set it when completed is given."""
        caller = self._require_caller(caller)
        event = await self._get_event_or_raise(event_id)
        self._require_owner_or_admin(caller, event)

        item = next((i for i in event.checklist if i.id == item_id), None)
        if item is None:
            raise ChecklistItemNotFound(str(event_id), item_id)
        new_value = (not item.completed) if completed is None else bool(completed)

        checklist = [
            {**i.model_dump(), "completed": new_value} if i.id == item_id else i.model_dump()
            for i in event.checklist
        ]

        async with self.session.begin_nested():  # SAVEPOINT
            if not await self.events.update_if_unchanged(
                event_id, event.updated_at, {"checklist": checklist}
            ):
                raise self._lost_race(event, "toggle_checklist_item")
            await self.audit.append(
                event_id=event_id,
                actor_id=caller.user_id,
                action=AuditAction.CHECKLIST_TOGGLE,
                from_value=item.completed,
                to_value=new_value,
                metadata={"item_id": item_id, "task": item.task},
            )

        metrics.record_operation("event", "checklist_toggle")
        return await self._get_event_or_raise(event_id)

    # =========================================================================
    # Admin operations
    # =========================================================================

    async def request_changes(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        message: str,
        reason: str | None = None,
        fields_with_issues: list[str] | None = None,
    ) -> Event:
        """Send a submitted event back to its host."""
        caller, event, target = await self._load_for_action(
            caller, event_id, LifecycleAction.REQUEST_CHANGES
        )
        message = (message or "").strip()
        if not message:
            raise ValidationFailed(["message"])
        fields = list(fields_with_issues or [])

        async with self.session.begin_nested():  # SAVEPOINT
            updated = await self._apply_transition(
                caller,
                event,
                LifecycleAction.REQUEST_CHANGES,
                target,
                metadata={"reason": reason, "fields": fields, "message": message},
            )

            text = f"Changes requested on {_label(updated)}"
            if reason:
                text += f" (reason: {reason})"
            if fields:
                text += f". Fields: {', '.join(fields)}"
            text += f". {message}"
            await self._notify_host(updated, NotificationType.CHANGES_REQUESTED, text)
            await self.drafts.clear_feedback(event_id, REQUEST_CHANGES_FIELD, caller.user_id)

        return updated

    async def approve_event(self, caller: CallerContext | None, event_id: UUID) -> Event:
        """Approve an event under review, generating its checklist if it has none."""
        caller, event, target = await self._load_for_action(
            caller, event_id, LifecycleAction.APPROVE
        )

        values: dict[str, Any] = {"approved_at": utc_now()}
        metadata: dict[str, Any] = {"checklist_generated": False}
        if not event.has_checklist():
            template = select_template(event.formats)
            items = generate_checklist(event.formats, event.event_date)
            values["checklist"] = [item.model_dump() for item in items]
            values["checklist_template"] = template
            metadata = {"checklist_generated": True, "checklist_template": template}

        async with self.session.begin_nested():  # SAVEPOINT
            updated = await self._apply_transition(
                caller, event, LifecycleAction.APPROVE, target, values=values, metadata=metadata
            )
            await self._notify_host(
                updated,
                NotificationType.EVENT_APPROVED,
                f"{_label(updated)} was approved",
            )

        return updated

    async def publish_event(self, caller: CallerContext | None, event_id: UUID) -> Event:
        """Publish an approved event; the registration URL must already be set."""
        caller, event, target = await self._load_for_action(
            caller, event_id, LifecycleAction.PUBLISH
        )
        if not event.luma_url:
            raise PreconditionFailed(
                f"Event {event_id} needs a registration URL before it can be published"
            )

        async with self.session.begin_nested():  # SAVEPOINT
            updated = await self._apply_transition(
                caller,
                event,
                LifecycleAction.PUBLISH,
                target,
                values={"on_calendar": True},
            )
            await self._notify_host(
                updated,
                NotificationType.EVENT_PUBLISHED,
                f"{_label(updated)} is published on the calendar",
            )

        return updated

    async def admin_force_status(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        new_status: EventStatus | str,
        reason: str | None = None,
    ) -> Event:
        """
        Set any status unconditionally.

        Skips the transition table and every content precondition. Checklist
        generation and approval stamping do not happen here; use
        regenerate_checklist after forcing into approved.
        """
        caller = self._require_admin(caller)
        try:
            target = EventStatus(new_status)
        except ValueError:
            raise ValidationFailed(["status"], f"Unknown status: {new_status}")
        event = await self._get_event_or_raise(event_id)

        async with self.session.begin_nested():  # SAVEPOINT
            updated = await self.events.update_fields(event_id, {"status": target})
            if updated is None:
                raise EventNotFound(str(event_id))
            await self.audit.append(
                event_id=event_id,
                actor_id=caller.user_id,
                action=AuditAction.STATUS_FORCED,
                from_value=event.status.value,
                to_value=target.value,
                metadata={"forced": True, "reason": reason},
            )
            await self._notify_host(
                updated,
                NotificationType.STATUS_CHANGED,
                f"An admin changed the status of {_label(updated)} to {target.value}",
            )

        logger.warning(
            "Event %s status forced: %s -> %s by %s (reason=%s)",
            event_id,
            event.status.value,
            target.value,
            caller.user_id,
            reason,
        )
        metrics.record_operation("event.transition", "force")
        return updated

    async def admin_update_event(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        **fields: Any,
    ) -> Event:
        """Edit content fields in any status, recording before/after of what changed."""
        caller = self._require_admin(caller)
        event = await self._get_event_or_raise(event_id)
        values = self._coerce_fields(fields, ADMIN_EDITABLE_FIELDS)

        changed = {
            name: value for name, value in values.items() if getattr(event, name) != value
        }
        if not changed:
            return event

        async with self.session.begin_nested():  # SAVEPOINT
            if not await self.events.update_if_unchanged(event_id, event.updated_at, changed):
                raise self._lost_race(event, "admin_update")
            await self.audit.append(
                event_id=event_id,
                actor_id=caller.user_id,
                action=AuditAction.ADMIN_FIELD_EDIT,
                from_value={name: _jsonable(getattr(event, name)) for name in changed},
                to_value={name: _jsonable(value) for name, value in changed.items()},
                metadata={"fields": sorted(changed)},
            )

        logger.info("Event %s fields %s edited by admin %s", event_id, sorted(changed), caller.user_id)
        metrics.record_operation("event", "admin_update")
        return await self._get_event_or_raise(event_id)

    async def regenerate_checklist(self, caller: CallerContext | None, event_id: UUID) -> Event:
        """Replace the checklist with a fresh generation from current formats and date."""
        caller = self._require_admin(caller)
        event = await self._get_event_or_raise(event_id)

        template = select_template(event.formats)
        items = generate_checklist(event.formats, event.event_date)

        async with self.session.begin_nested():  # SAVEPOINT
            if not await self.events.update_if_unchanged(
                event_id,
                event.updated_at,
                {
                    "checklist": [item.model_dump() for item in items],
                    "checklist_template": template,
                },
            ):
                raise self._lost_race(event, "regenerate_checklist")
            await self.audit.append(
                event_id=event_id,
                actor_id=caller.user_id,
                action=AuditAction.CHECKLIST_REGENERATED,
                from_value=event.checklist_template,
                to_value=template,
                metadata={"item_count": len(items)},
            )

        metrics.record_operation("event", "checklist_regenerate")
        return await self._get_event_or_raise(event_id)

    # =========================================================================
    # Feedback
    # =========================================================================

    async def open_thread(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        field_path: str,
        message: str,
        reason: str | None = None,
    ) -> FeedbackThread:
        """Open a field-anchored thread with its first comment."""
        caller = self._require_admin(caller)
        event = await self._get_event_or_raise(event_id)

        field_path = (field_path or "").strip()
        message = (message or "").strip()
        problems = [name for name, value in (("field_path", field_path), ("message", message)) if not value]
        if problems:
            raise ValidationFailed(problems)

        async with self.session.begin_nested():  # SAVEPOINT
            thread = await self.feedback.create_thread(
                event_id=event_id,
                field_path=field_path,
                opened_by=caller.user_id,
                reason=reason,
            )
            await self.feedback.add_comment(thread.thread_id, caller.user_id, message)
            await self.audit.append(
                event_id=event_id,
                actor_id=caller.user_id,
                action=AuditAction.FEEDBACK_ADDED,
                metadata={
                    "thread_id": str(thread.thread_id),
                    "field_path": field_path,
                    "reason": reason,
                    "message": message,
                },
            )
            await self._notify_host(
                event,
                NotificationType.FEEDBACK_ADDED,
                f"New feedback on {field_path} for {_label(event)}",
            )
            await self.drafts.clear_feedback(event_id, field_path, caller.user_id)

        metrics.record_operation("feedback", "open")
        return await self._get_thread_or_raise(thread.thread_id)

    async def add_comment(
        self,
        caller: CallerContext | None,
        thread_id: UUID,
        message: str,
    ) -> FeedbackComment:
        """
        Reply on an open thread.

        Resolved threads are closed to new comments; open a new thread to
        continue the conversation.
        """
        caller = self._require_caller(caller)
        thread = await self._get_thread_or_raise(thread_id)
        event = await self._get_event_or_raise(thread.event_id)
        self._require_owner_or_admin(caller, event)
        if not thread.is_open():
            raise InvalidState(thread.status.value, "comment", "Thread is resolved")

        message = (message or "").strip()
        if not message:
            raise ValidationFailed(["message"])

        async with self.session.begin_nested():  # SAVEPOINT
            if await self.feedback.lock_status(thread_id) != ThreadStatus.OPEN:
                raise InvalidState(ThreadStatus.RESOLVED.value, "comment", "Thread is resolved")
            comment = await self.feedback.add_comment(thread_id, caller.user_id, message)
            await self.audit.append(
                event_id=thread.event_id,
                actor_id=caller.user_id,
                action=AuditAction.FEEDBACK_COMMENTED,
                metadata={"thread_id": str(thread_id), "field_path": thread.field_path},
            )

        metrics.record_operation("feedback", "comment")
        return comment

    async def resolve_thread(self, caller: CallerContext | None, thread_id: UUID) -> FeedbackThread:
        """Mark an open thread resolved."""
        caller = self._require_admin(caller)
        thread = await self._get_thread_or_raise(thread_id)
        if not thread.is_open():
            raise InvalidState(thread.status.value, "resolve", "Thread is already resolved")

        async with self.session.begin_nested():  # SAVEPOINT
            if not await self.feedback.resolve(thread_id):
                raise InvalidState(ThreadStatus.RESOLVED.value, "resolve", "Thread is already resolved")
            await self.audit.append(
                event_id=thread.event_id,
                actor_id=caller.user_id,
                action=AuditAction.FEEDBACK_RESOLVED,
                metadata={"thread_id": str(thread_id), "field_path": thread.field_path},
            )

        metrics.record_operation("feedback", "resolve")
        return await self._get_thread_or_raise(thread_id)

    async def list_threads(
        self, caller: CallerContext | None, event_id: UUID
    ) -> list[FeedbackThread]:
        """All threads on an event for admins and the owner; empty for anyone else."""
        caller = self._require_caller(caller)
        event = await self.events.get(event_id)
        if caller.is_admin:
            if not event:
                raise EventNotFound(str(event_id))
        elif not event or not event.is_owned_by(caller.user_id):
            return []
        return await self.feedback.list_threads(event_id)

    async def count_open_threads(self, caller: CallerContext | None, event_id: UUID) -> int:
        caller = self._require_caller(caller)
        event = await self.events.get(event_id)
        if caller.is_admin:
            if not event:
                raise EventNotFound(str(event_id))
        elif not event or not event.is_owned_by(caller.user_id):
            return 0
        return await self.feedback.count_open(event_id)

    # =========================================================================
    # Audit and conflicts
    # =========================================================================

    async def get_audit_log(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        limit: int | None = None,
    ) -> list[AuditEntry]:
        """
        Newest-first audit trail for an event.

        Admins may read the trail of a deleted draft; hosts need the event.
        """
        caller = self._require_caller(caller)
        if not caller.is_admin:
            event = await self._get_event_or_raise(event_id)
            self._require_owner(caller, event)
        return await self.audit.list_for_event(event_id, limit=limit)

    async def detect_venue_conflicts(
        self,
        caller: CallerContext | None,
        event_date: datetime | str | None,
        venue: str | None,
        exclude_id: UUID | None = None,
    ) -> list[VenueConflict]:
        """Scheduled events at the same venue within the conflict window."""
        self._require_caller(caller)
        when = parse_timestamp(event_date)
        if when is None or not (venue or "").strip():
            return []

        window = timedelta(hours=settings.conflict_window_hours)
        candidates = await self.events.list_scheduled_between(when - window, when + window)
        return find_venue_conflicts(
            when,
            venue,
            candidates,
            exclude_id=exclude_id,
            window_hours=settings.conflict_window_hours,
            direct_hours=settings.direct_conflict_hours,
        )

    # =========================================================================
    # Notifications
    # =========================================================================

    async def list_notifications(
        self,
        caller: CallerContext | None,
        unread_only: bool = False,
        limit: int | None = None,
    ) -> list[Notification]:
        caller = self._require_caller(caller)
        limit = min(limit or settings.default_list_limit, settings.max_list_limit)
        return await self.notifications.list_for_user(
            caller.user_id, unread_only=unread_only, limit=limit
        )

    async def unread_count(self, caller: CallerContext | None) -> int:
        caller = self._require_caller(caller)
        return await self.notifications.unread_count(caller.user_id)

    async def mark_notification_read(
        self, caller: CallerContext | None, notification_id: UUID
    ) -> Notification:
        """Mark one of the caller's notifications read. Repeating is harmless."""
        caller = self._require_caller(caller)
        notification = await self.notifications.mark_read(notification_id, caller.user_id)
        if not notification:
            raise NotificationNotFound(str(notification_id))
        return notification

    async def mark_all_read(self, caller: CallerContext | None) -> int:
        caller = self._require_caller(caller)
        return await self.notifications.mark_all_read(caller.user_id)

    # =========================================================================
    # Drafts
    # =========================================================================

    async def get_form_draft(self, caller: CallerContext | None, key: str) -> FormDraft | None:
        caller = self._require_caller(caller)
        return await self.drafts.get_form(caller.user_id, key)

    async def upsert_form_draft(
        self, caller: CallerContext | None, key: str, data: dict[str, Any]
    ) -> FormDraft:
        caller = self._require_caller(caller)
        if not (key or "").strip():
            raise ValidationFailed(["key"])
        return await self.drafts.upsert_form(caller.user_id, key, data)

    async def clear_form_draft(self, caller: CallerContext | None, key: str) -> bool:
        caller = self._require_caller(caller)
        return await self.drafts.clear_form(caller.user_id, key)

    async def get_feedback_draft(
        self, caller: CallerContext | None, event_id: UUID, field_path: str
    ) -> FeedbackDraft | None:
        caller = self._require_admin(caller)
        return await self.drafts.get_feedback(event_id, field_path, caller.user_id)

    async def upsert_feedback_draft(
        self,
        caller: CallerContext | None,
        event_id: UUID,
        field_path: str,
        message: str,
        reason: str | None = None,
    ) -> FeedbackDraft:
        caller = self._require_admin(caller)
        if not (field_path or "").strip():
            raise ValidationFailed(["field_path"])
        return await self.drafts.upsert_feedback(
            event_id, field_path, caller.user_id, message or "", reason
        )

    async def clear_feedback_draft(
        self, caller: CallerContext | None, event_id: UUID, field_path: str
    ) -> bool:
        caller = self._require_admin(caller)
        return await self.drafts.clear_feedback(event_id, field_path, caller.user_id)

    async def get_metrics_snapshot(self, caller: CallerContext | None) -> dict[str, Any]:
        """In-process counters and timers, for admins."""
        self._require_admin(caller)
        return metrics.snapshot()

    # =========================================================================
    # Users
    # =========================================================================

    async def upsert_user_from_identity(
        self,
        external_id: str,
        name: str,
        email: str | None = None,
    ) -> User:
        """
        Create or refresh a user from identity-provider claims.

        The role is re-derived on every upsert: admin iff the email is in the
        configured admin list.
        """
        if not (external_id or "").strip():
            raise ValidationFailed(["external_id"])
        role = Role.ADMIN if settings.is_admin_email(email) else Role.HOST
        normalized_email = email.strip().lower() if email else None
        user = await self.users.upsert_from_identity(external_id, name, normalized_email, role)
        logger.info("User %s upserted with role %s", user.id, role.value)
        return user

    async def complete_onboarding(
        self,
        caller: CallerContext | None,
        org_name: str,
        website: str | None = None,
        socials: dict[str, str] | None = None,
    ) -> User:
        """Record the host profile collected during onboarding."""
        caller = self._require_caller(caller)
        org_name = (org_name or "").strip()
        if not org_name:
            raise ValidationFailed(["org_name"])

        user = await self.users.update_profile(
            caller.user_id,
            {
                "org_name": org_name,
                "website": (website or "").strip() or None,
                "socials": {k: v for k, v in (socials or {}).items() if v},
                "onboarding_completed": True,
            },
        )
        if not user:
            raise Unauthenticated("Caller no longer exists")
        return user
