"""
Read-boundary record upgrade tests.
"""

from uuid import uuid4

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.db.tables import EventTable
from eventgate.db.upgrade import upgrade_checklist_item, upgrade_event_record
from eventgate.engine import EventGateEngine
from eventgate.models import EventStatus
from eventgate.utils.time import utc_now


def _legacy_record(**values) -> dict:
    now = utc_now()
    record = {
        "event_id": uuid4(),
        "host_id": uuid4(),
        "status": "draft",
        "created_at": now,
        "updated_at": now,
    }
    record.update(values)
    return record


def test_missing_fields_get_defaults():
    event = upgrade_event_record(
        _legacy_record(
            title=None,
            short_description=None,
            venue=None,
            capacity=None,
            formats=None,
            is_public=None,
            has_hosted_before=None,
            target_audience=None,
            on_calendar=None,
            checklist_template=None,
            checklist=None,
        )
    )

    assert event.title == ""
    assert event.short_description == ""
    assert event.venue == ""
    assert event.capacity == 50
    assert event.formats == []
    assert event.is_public is True
    assert event.has_hosted_before is False
    assert event.target_audience == ""
    assert event.on_calendar is False
    assert event.checklist_template == "general"
    assert event.checklist == []
    assert event.status == EventStatus.DRAFT


def test_legacy_values_are_cleaned():
    event = upgrade_event_record(
        _legacy_record(
            status="approved",
            formats=["Panel", "", None, "Mixer"],
            checklist_template="retired-template",
            planning_doc_url="",
            luma_url="",
            checklist=[
                {"id": "a", "task": "Book room", "dueDate": "2030-06-01T00:00:00+00:00"},
                "garbage",
                {"task": "Order pizza", "completed": True},
            ],
        )
    )

    assert event.status == EventStatus.APPROVED
    assert event.formats == ["Panel", "Mixer"]
    assert event.checklist_template == "general"
    assert event.planning_doc_url is None
    assert event.luma_url is None
    assert [item.id for item in event.checklist] == ["a", "item-2"]
    assert event.checklist[0].due_date == "2030-06-01T00:00:00+00:00"
    assert event.checklist[0].section == "general"
    assert event.checklist[1].completed is True


def test_checklist_item_prefers_snake_case_due_date():
    item = upgrade_checklist_item({"id": "x", "task": "t", "due_date": "a", "dueDate": "b"}, 0)
    assert item.due_date == "a"


@pytest.mark.asyncio
async def test_repository_reads_go_through_upgrade(session: AsyncSession, host, draft_event):
    """Rows left sparse by older writers come back fully defaulted."""
    await session.execute(
        update(EventTable)
        .where(EventTable.event_id == draft_event)
        .values(
            venue=None,
            is_public=None,
            checklist_template=None,
            checklist=[{"task": "Legacy task", "dueDate": "2030-01-01T00:00:00+00:00"}],
        )
    )

    engine = EventGateEngine(session)
    event = await engine.get_event(host, draft_event)

    assert event.venue == ""
    assert event.is_public is True
    assert event.checklist_template == "general"
    assert event.checklist[0].id == "item-0"
    assert event.checklist[0].due_date == "2030-01-01T00:00:00+00:00"
