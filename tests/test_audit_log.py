"""
Audit log tests.
"""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.db.repositories import AuditRepository
from eventgate.engine import EventGateEngine, EventNotFound, Unauthorized
from eventgate.models import AuditAction


@pytest.mark.asyncio
async def test_audit_log_newest_first_with_actor_names(
    session: AsyncSession, host, admin, approved_event
):
    engine = EventGateEngine(session)

    entries = await engine.get_audit_log(admin, approved_event)

    assert [(e.from_value, e.to_value) for e in entries] == [
        ("submitted", "approved"),
        ("draft", "submitted"),
    ]
    assert [e.actor_name for e in entries] == ["Ada Admin", "Hana Host"]
    assert entries[0].metadata["action"] == "approve"
    assert entries[0].metadata["checklist_generated"] is True
    assert entries[0].metadata["checklist_template"] == "mixer"
    assert entries[0].entry_id > entries[1].entry_id


@pytest.mark.asyncio
async def test_audit_log_limit(session: AsyncSession, admin, approved_event):
    engine = EventGateEngine(session)

    entries = await engine.get_audit_log(admin, approved_event, limit=1)
    assert len(entries) == 1
    assert entries[0].to_value == "approved"


@pytest.mark.asyncio
async def test_audit_log_access(session: AsyncSession, host, other_host, admin, submitted_event):
    engine = EventGateEngine(session)

    assert len(await engine.get_audit_log(host, submitted_event)) == 1
    with pytest.raises(Unauthorized):
        await engine.get_audit_log(other_host, submitted_event)
    with pytest.raises(EventNotFound):
        await engine.get_audit_log(host, uuid4())


@pytest.mark.asyncio
async def test_audit_entries_survive_event_deletion(session: AsyncSession, host, admin):
    """Admins can still read the trail of a deleted draft."""
    engine = EventGateEngine(session)
    event_id = await engine.create_event(host, title="Short-lived")
    await engine.set_registration_url(admin, event_id, "https://lu.ma/short")

    await engine.delete_event(host, event_id)

    entries = await engine.get_audit_log(admin, event_id)
    assert [e.action for e in entries] == [AuditAction.REGISTRATION_URL_SET]
    assert entries[0].to_value == "https://lu.ma/short"


@pytest.mark.asyncio
async def test_unknown_actor_falls_back_to_placeholder_name(session: AsyncSession, draft_event):
    audit = AuditRepository(session)

    entry = await audit.append(
        event_id=draft_event,
        actor_id=uuid4(),
        action=AuditAction.ADMIN_FIELD_EDIT,
        metadata={"fields": []},
    )

    assert entry.actor_name == "User"
    assert (await audit.list_for_event(draft_event))[0].actor_name == "User"


@pytest.mark.asyncio
async def test_checklist_toggle_is_audited(session: AsyncSession, host, approved_event):
    engine = EventGateEngine(session)
    event = await engine.get_event(host, approved_event)
    item = event.checklist[0]

    await engine.toggle_checklist_item(host, approved_event, item.id)

    latest = (await engine.get_audit_log(host, approved_event))[0]
    assert latest.action == AuditAction.CHECKLIST_TOGGLE
    assert latest.from_value is False
    assert latest.to_value is True
    assert latest.metadata == {"item_id": item.id, "task": item.task}
