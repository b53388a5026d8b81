"""
End-to-end host/admin review flow.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.engine import EventGateEngine, Unauthorized, ValidationFailed
from eventgate.models import AuditAction, EventStatus, NotificationType


@pytest.mark.asyncio
async def test_draft_to_published_round_trip(session: AsyncSession, host, admin, complete_fields):
    """Create, fail submit, fix, submit, request changes, resubmit, approve, publish."""
    engine = EventGateEngine(session)

    event_id = await engine.create_event(host)
    await engine.update_event(host, event_id, title="AI Mixer")

    with pytest.raises(ValidationFailed) as exc_info:
        await engine.submit_event(host, event_id)
    missing = set(exc_info.value.fields)
    assert {
        "short_description",
        "event_date",
        "venue",
        "target_audience",
        "formats",
        "agreement",
    } <= missing

    await engine.update_event(host, event_id, **complete_fields)
    event = await engine.submit_event(host, event_id)
    assert event.status == EventStatus.SUBMITTED

    event = await engine.request_changes(
        admin,
        event_id,
        message="The main hall is booked that night.",
        reason="venue_issue",
        fields_with_issues=["venue"],
    )
    assert event.status == EventStatus.CHANGES_REQUESTED

    host_notes = await engine.list_notifications(host)
    changes = [n for n in host_notes if n.type == NotificationType.CHANGES_REQUESTED]
    assert len(changes) == 1
    assert "venue_issue" in changes[0].message
    assert "venue" in changes[0].message
    assert changes[0].event_id == event_id

    await engine.update_event(host, event_id, venue="Rooftop Terrace")
    event = await engine.submit_event(host, event_id)
    assert event.status == EventStatus.RESUBMITTED
    assert event.venue == "Rooftop Terrace"

    event = await engine.approve_event(admin, event_id)
    assert event.status == EventStatus.APPROVED
    assert event.checklist

    await engine.set_registration_url(host, event_id, "https://lu.ma/ai-mixer")
    event = await engine.publish_event(admin, event_id)
    assert event.status == EventStatus.PUBLISHED
    assert event.on_calendar is True

    transitions = [
        (e.from_value, e.to_value)
        for e in reversed(await engine.get_audit_log(host, event_id))
        if e.action == AuditAction.STATUS_CHANGE
    ]
    assert transitions == [
        ("draft", "submitted"),
        ("submitted", "changes_requested"),
        ("changes_requested", "resubmitted"),
        ("resubmitted", "approved"),
        ("approved", "published"),
    ]

    kinds = {n.type for n in await engine.list_notifications(host)}
    assert {
        NotificationType.CHANGES_REQUESTED,
        NotificationType.EVENT_APPROVED,
        NotificationType.EVENT_PUBLISHED,
    } <= kinds

    admin_notes = await engine.list_notifications(admin)
    submitted = [n for n in admin_notes if n.type == NotificationType.EVENT_SUBMITTED]
    assert len(submitted) == 2
    assert any("resubmitted" in n.message for n in submitted)


@pytest.mark.asyncio
async def test_request_changes_requires_message(session: AsyncSession, admin, submitted_event):
    engine = EventGateEngine(session)

    with pytest.raises(ValidationFailed) as exc_info:
        await engine.request_changes(admin, submitted_event, message="   ")
    assert exc_info.value.fields == ["message"]

    event = await engine.get_event(admin, submitted_event)
    assert event.status == EventStatus.SUBMITTED


@pytest.mark.asyncio
async def test_request_changes_metadata_in_audit(session: AsyncSession, admin, submitted_event):
    engine = EventGateEngine(session)

    await engine.request_changes(
        admin, submitted_event, message="Add a capacity plan", reason="capacity", fields_with_issues=["capacity"]
    )

    latest = (await engine.get_audit_log(admin, submitted_event))[0]
    assert latest.action == AuditAction.STATUS_CHANGE
    assert latest.metadata == {
        "action": "request_changes",
        "reason": "capacity",
        "fields": ["capacity"],
        "message": "Add a capacity plan",
    }


@pytest.mark.asyncio
async def test_review_queue_oldest_submission_first(
    session: AsyncSession, host, other_host, admin, complete_fields, submitted_event
):
    engine = EventGateEngine(session)

    later_id = await engine.create_event(other_host)
    await engine.update_event(other_host, later_id, **{**complete_fields, "title": "Later"})
    await engine.submit_event(other_host, later_id)
    await engine.open_thread(admin, later_id, "venue", "Which room?")

    queue = await engine.get_review_queue(admin)
    assert [entry.event_id for entry in queue] == [submitted_event, later_id]
    assert queue[0].host_name == "Hana Host"
    assert queue[0].has_open_threads is False
    assert queue[1].open_thread_count == 1
    assert queue[1].has_open_threads is True

    await engine.approve_event(admin, submitted_event)
    assert [e.event_id for e in await engine.get_review_queue(admin, "all")] == [later_id]
    assert [e.event_id for e in await engine.get_review_queue(admin, ["approved"])] == [submitted_event]

    with pytest.raises(ValidationFailed):
        await engine.get_review_queue(admin, ["archived"])


@pytest.mark.asyncio
async def test_review_queue_admin_only(session: AsyncSession, host):
    engine = EventGateEngine(session)
    with pytest.raises(Unauthorized):
        await engine.get_review_queue(host)
