"""Read-boundary record upgrades.

Rows written by older schema versions may carry nulls or partially shaped
checklist items. `upgrade_event_record` is the only place those gaps are
filled; repositories call it on every read and business logic only ever
sees fully defaulted `Event` models.
"""

from typing import Any, Mapping

from eventgate.checklist import CHECKLIST_TEMPLATES, DEFAULT_TEMPLATE
from eventgate.models import ChecklistItem, Event, EventStatus

EVENT_DEFAULTS: dict[str, Any] = {
    "title": "",
    "short_description": "",
    "venue": "",
    "capacity": 50,
    "is_public": True,
    "has_hosted_before": False,
    "target_audience": "",
    "on_calendar": False,
    "checklist_template": DEFAULT_TEMPLATE,
}

DEFAULT_CHECKLIST_SECTION = "general"


def upgrade_checklist_item(raw: Mapping[str, Any], position: int) -> ChecklistItem:
    """Fill gaps in one stored checklist item."""
    due_date = raw.get("due_date", raw.get("dueDate"))
    return ChecklistItem(
        id=str(raw.get("id") or f"item-{position}"),
        task=str(raw.get("task") or ""),
        completed=bool(raw.get("completed", False)),
        section=str(raw.get("section") or DEFAULT_CHECKLIST_SECTION),
        due_date=due_date or None,
    )


def upgrade_event_record(record: Mapping[str, Any]) -> Event:
    """Convert a raw stored event record into a fully defaulted Event."""
    values = dict(record)

    for key, default in EVENT_DEFAULTS.items():
        if values.get(key) is None:
            values[key] = default

    if values["checklist_template"] not in CHECKLIST_TEMPLATES:
        values["checklist_template"] = DEFAULT_TEMPLATE

    values["formats"] = [str(tag) for tag in (values.get("formats") or []) if tag]
    values["checklist"] = [
        upgrade_checklist_item(item, position)
        for position, item in enumerate(values.get("checklist") or [])
        if isinstance(item, Mapping)
    ]
    values["status"] = EventStatus(values.get("status") or EventStatus.DRAFT)

    # Empty strings from older clients mean "not set"
    for key in ("planning_doc_url", "luma_url"):
        if not values.get(key):
            values[key] = None

    return Event(**values)
