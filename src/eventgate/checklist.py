"""Post-approval checklist templates and generator.

Generation is a pure function of (format tags, event date): the same inputs
always produce the same items in the same order, so approving twice or
regenerating an unchanged event yields an identical list.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from eventgate.models import ChecklistItem, ChecklistSection
from eventgate.utils.time import parse_timestamp

DEFAULT_TEMPLATE = "general"


@dataclass(frozen=True)
class TemplateTask:
    """Template task with its offset in days before the event."""

    id: str
    task: str
    days_before_event: int


@dataclass(frozen=True)
class ChecklistTemplate:
    """Named task set grouped into the three checklist sections."""

    name: str
    planning: tuple[TemplateTask, ...]
    marketing: tuple[TemplateTask, ...]
    logistics: tuple[TemplateTask, ...]

    def sections(self) -> list[tuple[ChecklistSection, tuple[TemplateTask, ...]]]:
        return [
            (ChecklistSection.PLANNING, self.planning),
            (ChecklistSection.MARKETING, self.marketing),
            (ChecklistSection.LOGISTICS, self.logistics),
        ]


CHECKLIST_TEMPLATES: dict[str, ChecklistTemplate] = {
    "panel": ChecklistTemplate(
        name="Panel Discussion",
        planning=(
            TemplateTask("p1", "Confirm 3-5 panelists", 30),
            TemplateTask("p2", "Prepare moderator questions", 14),
            TemplateTask("p3", "Send panelist prep materials", 7),
        ),
        marketing=(
            TemplateTask("m1", "Create event graphic with panelist photos", 21),
            TemplateTask("m2", "Write LinkedIn event post", 14),
            TemplateTask("m3", "Send reminder email to registrants", 2),
        ),
        logistics=(
            TemplateTask("l1", "Test A/V setup for panel format", 3),
            TemplateTask("l2", "Prepare name cards for panelists", 1),
            TemplateTask("l3", "Set up panel seating arrangement", 0),
        ),
    ),
    "mixer": ChecklistTemplate(
        name="Networking Mixer",
        planning=(
            TemplateTask("p1", "Confirm catering order", 14),
            TemplateTask("p2", "Plan icebreaker activities", 7),
            TemplateTask("p3", "Create name tag template", 3),
        ),
        marketing=(
            TemplateTask("m1", "Create social media graphics", 21),
            TemplateTask("m2", "Post in relevant Slack/Discord channels", 10),
            TemplateTask("m3", "Final headcount for catering", 3),
        ),
        logistics=(
            TemplateTask("l1", "Set up registration table", 0),
            TemplateTask("l2", "Arrange furniture for mingling", 0),
            TemplateTask("l3", "Prepare music playlist", 1),
        ),
    ),
    "workshop": ChecklistTemplate(
        name="Workshop",
        planning=(
            TemplateTask("p1", "Finalize workshop curriculum", 21),
            TemplateTask("p2", "Prepare workshop materials/handouts", 7),
            TemplateTask("p3", "Send pre-workshop survey", 5),
        ),
        marketing=(
            TemplateTask("m1", "Write detailed workshop description", 28),
            TemplateTask("m2", "Create promotional video/teaser", 14),
            TemplateTask("m3", "Send workshop prep email", 2),
        ),
        logistics=(
            TemplateTask("l1", "Set up workshop stations/materials", 0),
            TemplateTask("l2", "Test all required software/tools", 1),
            TemplateTask("l3", "Print attendance sheets", 1),
        ),
    ),
    "general": ChecklistTemplate(
        name="General Event",
        planning=(
            TemplateTask("p1", "Finalize event agenda", 21),
            TemplateTask("p2", "Confirm all speakers/facilitators", 14),
            TemplateTask("p3", "Prepare event materials", 7),
        ),
        marketing=(
            TemplateTask("m1", "Create promotional materials", 21),
            TemplateTask("m2", "Share on social media", 14),
            TemplateTask("m3", "Send reminder notifications", 2),
        ),
        logistics=(
            TemplateTask("l1", "Prepare venue setup", 1),
            TemplateTask("l2", "Test audio/visual equipment", 1),
            TemplateTask("l3", "Prepare registration materials", 0),
        ),
    ),
}

# Keyword checks in priority order; first match wins
TEMPLATE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("panel", ("panel", "discussion")),
    ("mixer", ("mixer", "networking")),
    ("workshop", ("workshop", "training")),
)


def select_template(formats: list[str] | None) -> str:
    """Pick a template name from format tags by case-insensitive keyword match."""
    text = " ".join(tag for tag in (formats or []) if tag).lower()
    for template, keywords in TEMPLATE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return template
    return DEFAULT_TEMPLATE


def generate_checklist(
    formats: list[str] | None,
    event_date: datetime | str | None,
) -> list[ChecklistItem]:
    """
    Build the post-approval checklist for an event.

    Due date = event date minus the task offset. A missing or unparsable
    event date leaves every due date unset; items are still produced.

    Items are ordered by due date ascending. Undated items go last. The sort
    is stable, so equal due dates keep template order (planning, marketing,
    logistics).
    """
    template_name = select_template(formats)
    template = CHECKLIST_TEMPLATES[template_name]
    when = parse_timestamp(event_date)

    items: list[ChecklistItem] = []
    for section, tasks in template.sections():
        for task in tasks:
            due_date = None
            if when is not None:
                due_date = (when - timedelta(days=task.days_before_event)).isoformat()
            items.append(
                ChecklistItem(
                    id=f"{template_name}-{task.id}",
                    task=task.task,
                    completed=False,
                    section=section.value,
                    due_date=due_date,
                )
            )

    # All due dates share one offset-aware origin, so ISO strings sort correctly
    return sorted(items, key=lambda item: (item.due_date is None, item.due_date or ""))
