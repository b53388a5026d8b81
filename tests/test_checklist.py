"""
Checklist template selection and generation tests.
"""

from datetime import datetime, timezone

import pytest

from eventgate.checklist import CHECKLIST_TEMPLATES, generate_checklist, select_template


EVENT_DATE = datetime(2030, 6, 15, 18, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "formats,expected",
    [
        (["Panel Discussion"], "panel"),
        (["Networking Mixer"], "mixer"),
        (["Hands-on Training"], "workshop"),
        (["WORKSHOP"], "workshop"),
        (["Workshop", "Panel"], "panel"),
        (["Networking", "Workshop"], "mixer"),
        (["Hackathon"], "general"),
        (["Fireside", "", "Open Discussion"], "panel"),
        (["Demo Night", "Team Training"], "workshop"),
        ([], "general"),
        (None, "general"),
    ],
)
def test_select_template_matches_keywords_in_priority_order(formats, expected):
    """First matching keyword group wins, case-insensitively."""
    assert select_template(formats) == expected


def test_generate_checklist_due_dates_and_order():
    """Items carry event date minus offset and are sorted by due date."""
    items = generate_checklist(["Networking Mixer"], EVENT_DATE)

    assert len(items) == 9
    assert [item.id for item in items] == [
        "mixer-m1",
        "mixer-p1",
        "mixer-m2",
        "mixer-p2",
        "mixer-p3",
        "mixer-m3",
        "mixer-l3",
        "mixer-l1",
        "mixer-l2",
    ]
    assert items[0].due_date == "2030-05-25T18:00:00+00:00"
    assert items[-1].due_date == EVENT_DATE.isoformat()
    assert all(not item.completed for item in items)
    assert {item.section for item in items} == {"planning", "marketing", "logistics"}


def test_generate_checklist_is_deterministic():
    """Same formats and date produce an identical list every time."""
    first = generate_checklist(["Panel Discussion"], EVENT_DATE)
    second = generate_checklist(["Panel Discussion"], "2030-06-15T18:00:00Z")

    assert [item.model_dump() for item in first] == [item.model_dump() for item in second]


def test_generate_checklist_without_date_keeps_template_order():
    """A missing or unparsable date leaves due dates unset."""
    for event_date in (None, "", "not-a-date"):
        items = generate_checklist(["Hackathon"], event_date)

        assert len(items) == 9
        assert all(item.due_date is None for item in items)
        assert [item.id for item in items[:3]] == ["general-p1", "general-p2", "general-p3"]
        assert items[-1].id == "general-l3"


def test_every_template_has_nine_tasks():
    for name, template in CHECKLIST_TEMPLATES.items():
        items = generate_checklist([name], EVENT_DATE)
        assert len(items) == 9, name
        assert all(item.id.startswith(f"{name}-") for item in items)
        assert sum(len(tasks) for _, tasks in template.sections()) == 9
