"""Content validation for submission and registration URLs."""

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from eventgate.config import settings
from eventgate.engine.errors import ValidationFailed
from eventgate.models import Event

# Field names reported by submission validation, in report order
SUBMISSION_FIELDS = (
    "title",
    "short_description",
    "event_date",
    "venue",
    "target_audience",
    "formats",
    "agreement",
    "capacity",
    "planning_doc_url",
)

_http_url = TypeAdapter(AnyHttpUrl)


def submission_problems(event: Event) -> list[str]:
    """
    Return every field that blocks submission.

    All checks run so the caller can surface the full list at once.
    """
    problems: set[str] = set()

    title = event.title.strip()
    if not title or len(title) > settings.max_title_length:
        problems.add("title")
    description = event.short_description.strip()
    if not settings.min_description_length <= len(description) <= settings.max_description_length:
        problems.add("short_description")
    if event.event_date is None:
        problems.add("event_date")
    venue = event.venue.strip()
    if not venue or len(venue) > settings.max_venue_length:
        problems.add("venue")
    audience = event.target_audience.strip()
    if not audience or len(audience) > settings.max_audience_length:
        problems.add("target_audience")
    if not 1 <= len(event.formats) <= settings.max_formats:
        problems.add("formats")
    if event.agreement_accepted_at is None:
        problems.add("agreement")
    if not settings.min_capacity <= event.capacity <= settings.max_capacity:
        problems.add("capacity")
    if event.planning_doc_url and not _is_http_url(event.planning_doc_url):
        problems.add("planning_doc_url")

    return [name for name in SUBMISSION_FIELDS if name in problems]


def _is_http_url(value: str) -> bool:
    try:
        _http_url.validate_python(value.strip())
    except ValidationError:
        return False
    return True


def require_submittable(event: Event) -> None:
    """Raise ValidationFailed listing every missing or invalid field."""
    problems = submission_problems(event)
    if problems:
        raise ValidationFailed(problems)


def normalize_registration_url(url: str) -> str:
    """
    Validate an external registration URL and return it stripped.

    The URL must be absolute http(s). When a registration domain is
    configured, the host must be that domain or one of its subdomains.
    """
    candidate = (url or "").strip()
    try:
        parsed = _http_url.validate_python(candidate)
    except ValidationError:
        raise ValidationFailed(["luma_url"], "Registration URL must be an absolute http(s) URL")

    domain = settings.registration_url_domain
    if domain:
        host = (parsed.host or "").lower()
        if host != domain and not host.endswith("." + domain):
            raise ValidationFailed(
                ["luma_url"], f"Registration URL must point to {domain}"
            )

    return candidate
