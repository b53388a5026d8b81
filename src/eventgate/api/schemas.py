"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from eventgate.models import EventStatus, Role


# ============================================================================
# Shared schemas
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error body returned for every engine error."""

    code: str
    message: str
    fields: Optional[list[str]] = None


class CountResponse(BaseModel):
    count: int


class OkResponse(BaseModel):
    ok: bool = True


# ============================================================================
# Users
# ============================================================================


class SyncUserRequest(BaseModel):
    """Identity claims (used directly only in insecure dev mode)."""

    external_id: Optional[str] = Field(None, description="Identity-provider subject")
    name: Optional[str] = None
    email: Optional[str] = None


class OnboardingRequest(BaseModel):
    org_name: str = Field(..., min_length=1)
    website: Optional[str] = None
    socials: dict[str, str] = Field(default_factory=dict)


class UserResponse(BaseModel):
    """User profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    external_id: str
    email: Optional[str] = None
    name: str
    role: Role
    org_name: Optional[str] = None
    website: Optional[str] = None
    socials: Optional[dict[str, Any]] = None
    onboarding_completed: bool


# ============================================================================
# Events
# ============================================================================


class CreateEventRequest(BaseModel):
    """Create event request; everything else is filled in through updates."""

    title: Optional[str] = None
    short_description: Optional[str] = None


class CreateEventResponse(BaseModel):
    event_id: UUID
    status: EventStatus = EventStatus.DRAFT


class UpdateEventRequest(BaseModel):
    """
    Partial content update.

    Omitted and null fields are left unchanged; bounds are only checked at
    submission.
    """

    title: Optional[str] = None
    short_description: Optional[str] = None
    event_date: Optional[datetime] = None
    venue: Optional[str] = None
    capacity: Optional[int] = None
    formats: Optional[list[str]] = None
    is_public: Optional[bool] = None
    has_hosted_before: Optional[bool] = None
    target_audience: Optional[str] = None
    planning_doc_url: Optional[str] = None
    agreement_accepted: Optional[bool] = None


class AdminUpdateEventRequest(UpdateEventRequest):
    on_calendar: Optional[bool] = None


class RequestChangesRequest(BaseModel):
    message: str = Field(..., min_length=1)
    reason: Optional[str] = Field(None, description="Reason code, e.g. venue_issue")
    fields_with_issues: list[str] = Field(default_factory=list)


class RegistrationUrlRequest(BaseModel):
    url: str = Field(..., description="External registration URL")


class ForceStatusRequest(BaseModel):
    status: EventStatus
    reason: Optional[str] = None


class ToggleChecklistRequest(BaseModel):
    completed: Optional[bool] = Field(None, description="Omit to flip the current value")


# ============================================================================
# Feedback
# ============================================================================


class OpenThreadRequest(BaseModel):
    field_path: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    reason: Optional[str] = None


class AddCommentRequest(BaseModel):
    message: str = Field(..., min_length=1)


# ============================================================================
# Drafts
# ============================================================================


class FormDraftRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class FeedbackDraftRequest(BaseModel):
    message: str = ""
    reason: Optional[str] = None
