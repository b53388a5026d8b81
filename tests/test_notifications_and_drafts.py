"""
Notification inbox and draft cache tests.
"""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.auth.context import CallerContext
from eventgate.engine import EventGateEngine, NotificationNotFound, Unauthorized, ValidationFailed
from eventgate.models import REQUEST_CHANGES_FIELD, NotificationType, Role


@pytest.mark.asyncio
async def test_submit_notifies_every_admin(session: AsyncSession, host, admin, draft_event):
    engine = EventGateEngine(session)
    second = await engine.users.upsert_from_identity("ext-second-admin", "Sam Second", None, Role.ADMIN)
    second_admin = CallerContext.from_user(second)

    await engine.submit_event(host, draft_event)

    for caller in (admin, second_admin):
        notes = await engine.list_notifications(caller)
        assert len(notes) == 1
        assert notes[0].type == NotificationType.EVENT_SUBMITTED
        assert notes[0].event_id == draft_event
        assert notes[0].message == '"AI Mixer" was submitted for review'

    assert await engine.list_notifications(host) == []


@pytest.mark.asyncio
async def test_unread_count_and_mark_read(session: AsyncSession, host, admin, submitted_event):
    engine = EventGateEngine(session)
    await engine.open_thread(admin, submitted_event, "venue", "Which room?")
    await engine.approve_event(admin, submitted_event)

    assert await engine.unread_count(host) == 2
    notes = await engine.list_notifications(host)
    assert all(not n.is_read() for n in notes)

    first = await engine.mark_notification_read(host, notes[0].notification_id)
    assert first.read_at is not None
    again = await engine.mark_notification_read(host, notes[0].notification_id)
    assert again.read_at == first.read_at

    assert await engine.unread_count(host) == 1
    unread = await engine.list_notifications(host, unread_only=True)
    assert [n.notification_id for n in unread] == [notes[1].notification_id]

    assert await engine.mark_all_read(host) == 1
    assert await engine.unread_count(host) == 0
    assert await engine.mark_all_read(host) == 0


@pytest.mark.asyncio
async def test_cannot_read_someone_elses_notification(
    session: AsyncSession, host, other_host, admin, submitted_event
):
    engine = EventGateEngine(session)
    await engine.approve_event(admin, submitted_event)
    note = (await engine.list_notifications(host))[0]

    with pytest.raises(NotificationNotFound):
        await engine.mark_notification_read(other_host, note.notification_id)
    with pytest.raises(NotificationNotFound):
        await engine.mark_notification_read(host, uuid4())

    assert await engine.unread_count(host) == 1


@pytest.mark.asyncio
async def test_form_draft_lifecycle(session: AsyncSession, host, other_host):
    engine = EventGateEngine(session)

    assert await engine.get_form_draft(host, "new-event") is None

    draft = await engine.upsert_form_draft(host, "new-event", {"title": "AI"})
    assert draft.data == {"title": "AI"}

    draft = await engine.upsert_form_draft(host, "new-event", {"title": "AI Mixer", "venue": "Hall"})
    assert draft.data == {"title": "AI Mixer", "venue": "Hall"}
    assert (await engine.get_form_draft(host, "new-event")).draft_id == draft.draft_id

    # Drafts are per user
    assert await engine.get_form_draft(other_host, "new-event") is None

    assert await engine.clear_form_draft(host, "new-event") is True
    assert await engine.clear_form_draft(host, "new-event") is False
    assert await engine.get_form_draft(host, "new-event") is None

    with pytest.raises(ValidationFailed):
        await engine.upsert_form_draft(host, "  ", {})


@pytest.mark.asyncio
async def test_feedback_draft_lifecycle(session: AsyncSession, host, admin, submitted_event):
    engine = EventGateEngine(session)

    draft = await engine.upsert_feedback_draft(admin, submitted_event, "venue", "Room is", reason="venue_issue")
    assert draft.message == "Room is"
    assert draft.reason == "venue_issue"

    draft = await engine.upsert_feedback_draft(admin, submitted_event, "venue", "Room is too small")
    fetched = await engine.get_feedback_draft(admin, submitted_event, "venue")
    assert fetched.message == "Room is too small"
    assert fetched.draft_id == draft.draft_id

    with pytest.raises(Unauthorized):
        await engine.get_feedback_draft(host, submitted_event, "venue")
    with pytest.raises(ValidationFailed):
        await engine.upsert_feedback_draft(admin, submitted_event, "", "text")

    assert await engine.clear_feedback_draft(admin, submitted_event, "venue") is True
    assert await engine.get_feedback_draft(admin, submitted_event, "venue") is None


@pytest.mark.asyncio
async def test_request_changes_clears_its_draft(session: AsyncSession, admin, submitted_event):
    engine = EventGateEngine(session)
    await engine.upsert_feedback_draft(admin, submitted_event, REQUEST_CHANGES_FIELD, "Needs a venue plan")
    await engine.upsert_feedback_draft(admin, submitted_event, "venue", "Which room?")

    await engine.request_changes(admin, submitted_event, message="Needs a venue plan")

    assert await engine.get_feedback_draft(admin, submitted_event, REQUEST_CHANGES_FIELD) is None
    assert await engine.get_feedback_draft(admin, submitted_event, "venue") is not None
