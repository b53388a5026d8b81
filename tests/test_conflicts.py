"""
Venue conflict detection tests.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.conflicts import find_venue_conflicts, normalize_venue
from eventgate.engine import EventGateEngine
from eventgate.models import Event, EventStatus
from eventgate.utils.time import utc_now


SLOT = datetime(2030, 6, 15, 18, 0, tzinfo=timezone.utc)


def _event(
    offset_hours: float,
    venue: str = "Main Hall",
    status: EventStatus = EventStatus.APPROVED,
    title: str = "Other event",
) -> Event:
    now = utc_now()
    return Event(
        event_id=uuid4(),
        host_id=uuid4(),
        status=status,
        title=title,
        event_date=SLOT + timedelta(hours=offset_hours),
        venue=venue,
        created_at=now,
        updated_at=now,
    )


def test_normalize_venue():
    assert normalize_venue("  Main   HALL ") == "main hall"
    assert normalize_venue(None) == ""
    assert normalize_venue("") == ""


def test_thirty_minutes_apart_is_direct_conflict():
    conflicts = find_venue_conflicts(SLOT, "Main Hall", [(_event(0.5), "Hana")])

    assert len(conflicts) == 1
    assert conflicts[0].is_direct_conflict is True
    assert conflicts[0].time_difference_hours == 0.5
    assert conflicts[0].host_name == "Hana"


def test_two_hours_apart_is_conflict_but_not_direct():
    conflicts = find_venue_conflicts(SLOT, "Main Hall", [(_event(-2), "Hana")])

    assert len(conflicts) == 1
    assert conflicts[0].is_direct_conflict is False
    assert conflicts[0].time_difference_hours == 2.0


def test_window_boundary_is_inclusive():
    """Exactly three hours is reported; anything beyond is not."""
    conflicts = find_venue_conflicts(
        SLOT,
        "Main Hall",
        [(_event(3), "at-edge"), (_event(3.25), "beyond")],
    )

    assert [c.host_name for c in conflicts] == ["at-edge"]


def test_one_hour_apart_is_not_direct():
    conflicts = find_venue_conflicts(SLOT, "Main Hall", [(_event(1), "Hana")])
    assert conflicts[0].is_direct_conflict is False


def test_different_venue_or_far_away_not_reported():
    candidates = [
        (_event(0.5, venue="Side Room"), "a"),
        (_event(4), "b"),
        (_event(-5), "c"),
    ]
    assert find_venue_conflicts(SLOT, "Main Hall", candidates) == []


def test_drafts_and_changes_requested_are_not_conflict_sources():
    candidates = [
        (_event(0, status=EventStatus.DRAFT), "draft"),
        (_event(0, status=EventStatus.CHANGES_REQUESTED), "changes"),
        (_event(0, status=EventStatus.SUBMITTED), "submitted"),
        (_event(0, status=EventStatus.PUBLISHED), "published"),
    ]
    conflicts = find_venue_conflicts(SLOT, "Main Hall", candidates)
    assert sorted(c.host_name for c in conflicts) == ["published", "submitted"]


def test_venue_matching_ignores_case_and_spacing():
    conflicts = find_venue_conflicts(SLOT, "main  hall", [(_event(0.25, venue=" MAIN HALL "), "x")])
    assert len(conflicts) == 1


def test_exclude_id_skips_the_event_being_edited():
    own = _event(0)
    conflicts = find_venue_conflicts(SLOT, "Main Hall", [(own, "me")], exclude_id=own.event_id)
    assert conflicts == []


def test_results_ordered_closest_first():
    conflicts = find_venue_conflicts(
        SLOT,
        "Main Hall",
        [(_event(2.5), "far"), (_event(-0.5), "near"), (_event(1.5), "mid")],
    )
    assert [c.host_name for c in conflicts] == ["near", "mid", "far"]


@pytest.mark.asyncio
async def test_detect_venue_conflicts_reads_scheduled_events(
    session: AsyncSession, host, other_host, submitted_event, event_date
):
    """Submitted events at the venue are reported with their host's name."""
    engine = EventGateEngine(session)

    # A draft in the same slot never blocks anyone
    draft_id = await engine.create_event(other_host, title="Quiet draft")
    await engine.update_event(other_host, draft_id, venue="Main Hall", event_date=event_date)

    conflicts = await engine.detect_venue_conflicts(
        other_host, (event_date + timedelta(minutes=30)).isoformat(), " main hall "
    )

    assert len(conflicts) == 1
    assert conflicts[0].event_id == submitted_event
    assert conflicts[0].host_name == "Hana Host"
    assert conflicts[0].is_direct_conflict is True

    excluded = await engine.detect_venue_conflicts(
        host, event_date, "Main Hall", exclude_id=submitted_event
    )
    assert excluded == []


@pytest.mark.asyncio
async def test_detect_venue_conflicts_empty_input(session: AsyncSession, host, submitted_event):
    engine = EventGateEngine(session)

    assert await engine.detect_venue_conflicts(host, None, "Main Hall") == []
    assert await engine.detect_venue_conflicts(host, "garbage", "Main Hall") == []
    assert await engine.detect_venue_conflicts(host, SLOT, "   ") == []
