"""Venue conflict scoring."""

from datetime import datetime
from typing import Iterable
from uuid import UUID

from eventgate.models import Event, EventStatus, VenueConflict


def normalize_venue(venue: str | None) -> str:
    """Case- and whitespace-insensitive venue key."""
    if not venue:
        return ""
    return " ".join(venue.split()).casefold()


def find_venue_conflicts(
    event_date: datetime,
    venue: str,
    candidates: Iterable[tuple[Event, str]],
    exclude_id: UUID | None = None,
    window_hours: float = 3.0,
    direct_hours: float = 1.0,
) -> list[VenueConflict]:
    """
    Score candidate (event, host name) pairs against a proposed slot.

    Only events at the same normalized venue, in a scheduled status, within
    ±window_hours (inclusive) are reported. Results are ordered most severe
    first.
    """
    target = normalize_venue(venue)
    if not target:
        return []

    conflicts: list[VenueConflict] = []
    for event, host_name in candidates:
        if exclude_id is not None and event.event_id == exclude_id:
            continue
        if event.status not in EventStatus.scheduled_states():
            continue
        if event.event_date is None or normalize_venue(event.venue) != target:
            continue

        difference = abs((event.event_date - event_date).total_seconds()) / 3600.0
        if difference > window_hours:
            continue

        conflicts.append(
            VenueConflict(
                event_id=event.event_id,
                title=event.title,
                event_date=event.event_date,
                venue=event.venue,
                host_name=host_name,
                status=event.status,
                time_difference_hours=round(difference, 1),
                is_direct_conflict=difference < direct_hours,
            )
        )

    conflicts.sort(key=lambda c: (abs((c.event_date - event_date).total_seconds()), str(c.event_id)))
    return conflicts
