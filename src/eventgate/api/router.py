"""REST API router."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Response

from eventgate.api.deps import bearer_token, get_caller, get_engine, insecure_dev_enabled
from eventgate.api.schemas import (
    AddCommentRequest,
    AdminUpdateEventRequest,
    CountResponse,
    CreateEventRequest,
    CreateEventResponse,
    FeedbackDraftRequest,
    ForceStatusRequest,
    FormDraftRequest,
    HealthResponse,
    OkResponse,
    OnboardingRequest,
    OpenThreadRequest,
    RegistrationUrlRequest,
    RequestChangesRequest,
    SyncUserRequest,
    ToggleChecklistRequest,
    UpdateEventRequest,
    UserResponse,
)
from eventgate.auth.context import CallerContext
from eventgate.auth.token import decode_session_token
from eventgate.engine import EventGateEngine, Unauthenticated, ValidationFailed
from eventgate.models import (
    AuditEntry,
    Event,
    EventStats,
    EventSummary,
    FeedbackComment,
    FeedbackDraft,
    FeedbackThread,
    FormDraft,
    Notification,
    ReviewQueueEntry,
    VenueConflict,
)

router = APIRouter(prefix="/v1")

VERSION = "0.1.0"


# ============================================================================
# Health & Metrics
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=VERSION)


@router.get("/metrics")
async def get_metrics(
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
) -> dict[str, Any]:
    """Metrics snapshot (admin only)."""
    return await engine.get_metrics_snapshot(caller)


# ============================================================================
# Users
# ============================================================================


@router.post("/users/sync", response_model=UserResponse)
async def sync_user(
    request: Optional[SyncUserRequest] = None,
    authorization: Optional[str] = Header(None),
    engine: EventGateEngine = Depends(get_engine),
):
    """
    Upsert the calling user from identity-provider claims.

    With a session token the claims come from the token; raw claims in the
    body are only trusted in insecure dev mode.
    """
    request = request or SyncUserRequest()
    token = bearer_token(authorization)
    if token:
        claims = decode_session_token(token)
        external_id = claims.get("sub")
        name = claims.get("name") or request.name or ""
        email = claims.get("email") or request.email
    elif insecure_dev_enabled():
        external_id, name, email = request.external_id, request.name or "", request.email
    else:
        raise Unauthenticated("Session token required")

    if not external_id:
        raise ValidationFailed(["external_id"])
    user = await engine.upsert_user_from_identity(str(external_id), name, email)
    return UserResponse.model_validate(user)


@router.get("/users/me", response_model=UserResponse)
async def get_me(
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    if caller is None:
        raise Unauthenticated()
    user = await engine.users.get(caller.user_id)
    if not user:
        raise Unauthenticated("Caller no longer exists")
    return UserResponse.model_validate(user)


@router.post("/users/me/onboarding", response_model=UserResponse)
async def complete_onboarding(
    request: OnboardingRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    user = await engine.complete_onboarding(
        caller,
        org_name=request.org_name,
        website=request.website,
        socials=request.socials,
    )
    return UserResponse.model_validate(user)


# ============================================================================
# Event reads
# ============================================================================


@router.get("/events", response_model=list[EventSummary])
async def list_my_events(
    limit: Optional[int] = Query(None, ge=1, le=200),
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    """List the caller's events, newest first."""
    return await engine.list_my_events(caller, limit=limit)


@router.get("/events/stats", response_model=EventStats)
async def get_event_stats(
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.get_event_stats(caller)


@router.get("/review-queue", response_model=list[ReviewQueueEntry])
async def get_review_queue(
    status: Optional[list[str]] = Query(None, description="Statuses, or 'all'"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    """Events awaiting review, oldest submission first (admin only)."""
    return await engine.get_review_queue(caller, statuses=status, limit=limit)


@router.get("/events/{event_id}", response_model=Event)
async def get_event(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.get_event(caller, event_id)


# ============================================================================
# Host operations
# ============================================================================


@router.post("/events", response_model=CreateEventResponse, status_code=201)
async def create_event(
    request: Optional[CreateEventRequest] = None,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    """Create a draft event."""
    request = request or CreateEventRequest()
    event_id = await engine.create_event(
        caller, title=request.title, short_description=request.short_description
    )
    return CreateEventResponse(event_id=event_id)


@router.patch("/events/{event_id}", response_model=Event)
async def update_event(
    event_id: UUID,
    request: UpdateEventRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    """Save draft content; omitted fields are left unchanged."""
    return await engine.update_event(caller, event_id, **request.model_dump(exclude_unset=True))


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    await engine.delete_event(caller, event_id)
    return Response(status_code=204)


@router.post("/events/{event_id}/submit", response_model=Event)
async def submit_event(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    """Submit (or resubmit) an event for review."""
    return await engine.submit_event(caller, event_id)


@router.put("/events/{event_id}/registration-url", response_model=Event)
async def set_registration_url(
    event_id: UUID,
    request: RegistrationUrlRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.set_registration_url(caller, event_id, request.url)


@router.post("/events/{event_id}/checklist/{item_id}/toggle", response_model=Event)
async def toggle_checklist_item(
    event_id: UUID,
    item_id: str,
    request: Optional[ToggleChecklistRequest] = None,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    request = request or ToggleChecklistRequest()
    return await engine.toggle_checklist_item(
        caller, event_id, item_id, completed=request.completed
    )


# ============================================================================
# Admin operations
# ============================================================================


@router.post("/events/{event_id}/request-changes", response_model=Event)
async def request_changes(
    event_id: UUID,
    request: RequestChangesRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.request_changes(
        caller,
        event_id,
        message=request.message,
        reason=request.reason,
        fields_with_issues=request.fields_with_issues,
    )


@router.post("/events/{event_id}/approve", response_model=Event)
async def approve_event(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.approve_event(caller, event_id)


@router.post("/events/{event_id}/publish", response_model=Event)
async def publish_event(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.publish_event(caller, event_id)


@router.post("/events/{event_id}/force-status", response_model=Event)
async def force_status(
    event_id: UUID,
    request: ForceStatusRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    """Set any status, bypassing the lifecycle rules (admin only, audited)."""
    return await engine.admin_force_status(caller, event_id, request.status, reason=request.reason)


@router.patch("/events/{event_id}/admin", response_model=Event)
async def admin_update_event(
    event_id: UUID,
    request: AdminUpdateEventRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.admin_update_event(
        caller, event_id, **request.model_dump(exclude_unset=True)
    )


@router.post("/events/{event_id}/checklist/regenerate", response_model=Event)
async def regenerate_checklist(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.regenerate_checklist(caller, event_id)


# ============================================================================
# Feedback
# ============================================================================


@router.get("/events/{event_id}/threads", response_model=list[FeedbackThread])
async def list_threads(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.list_threads(caller, event_id)


@router.get("/events/{event_id}/threads/open-count", response_model=CountResponse)
async def count_open_threads(
    event_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return CountResponse(count=await engine.count_open_threads(caller, event_id))


@router.post("/events/{event_id}/threads", response_model=FeedbackThread, status_code=201)
async def open_thread(
    event_id: UUID,
    request: OpenThreadRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.open_thread(
        caller,
        event_id,
        field_path=request.field_path,
        message=request.message,
        reason=request.reason,
    )


@router.post("/threads/{thread_id}/comments", response_model=FeedbackComment, status_code=201)
async def add_comment(
    thread_id: UUID,
    request: AddCommentRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.add_comment(caller, thread_id, request.message)


@router.post("/threads/{thread_id}/resolve", response_model=FeedbackThread)
async def resolve_thread(
    thread_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.resolve_thread(caller, thread_id)


# ============================================================================
# Audit & Conflicts
# ============================================================================


@router.get("/events/{event_id}/audit", response_model=list[AuditEntry])
async def get_audit_log(
    event_id: UUID,
    limit: Optional[int] = Query(None, ge=1, le=500),
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.get_audit_log(caller, event_id, limit=limit)


@router.get("/conflicts", response_model=list[VenueConflict])
async def detect_venue_conflicts(
    event_date: Optional[datetime] = Query(None),
    venue: Optional[str] = Query(None),
    exclude_id: Optional[UUID] = Query(None),
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    """Scheduled events at the same venue within the conflict window."""
    return await engine.detect_venue_conflicts(caller, event_date, venue, exclude_id=exclude_id)


# ============================================================================
# Notifications
# ============================================================================


@router.get("/notifications", response_model=list[Notification])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: Optional[int] = Query(None, ge=1, le=200),
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.list_notifications(caller, unread_only=unread_only, limit=limit)


@router.get("/notifications/unread-count", response_model=CountResponse)
async def unread_count(
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return CountResponse(count=await engine.unread_count(caller))


@router.post("/notifications/read-all", response_model=CountResponse)
async def mark_all_read(
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return CountResponse(count=await engine.mark_all_read(caller))


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: UUID,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.mark_notification_read(caller, notification_id)


# ============================================================================
# Drafts
# ============================================================================


@router.get("/drafts/forms/{key}", response_model=Optional[FormDraft])
async def get_form_draft(
    key: str,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.get_form_draft(caller, key)


@router.put("/drafts/forms/{key}", response_model=FormDraft)
async def upsert_form_draft(
    key: str,
    request: FormDraftRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.upsert_form_draft(caller, key, request.data)


@router.delete("/drafts/forms/{key}", response_model=OkResponse)
async def clear_form_draft(
    key: str,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return OkResponse(ok=await engine.clear_form_draft(caller, key))


@router.get("/events/{event_id}/feedback-drafts/{field_path}", response_model=Optional[FeedbackDraft])
async def get_feedback_draft(
    event_id: UUID,
    field_path: str,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.get_feedback_draft(caller, event_id, field_path)


@router.put("/events/{event_id}/feedback-drafts/{field_path}", response_model=FeedbackDraft)
async def upsert_feedback_draft(
    event_id: UUID,
    field_path: str,
    request: FeedbackDraftRequest,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return await engine.upsert_feedback_draft(
        caller, event_id, field_path, request.message, reason=request.reason
    )


@router.delete("/events/{event_id}/feedback-drafts/{field_path}", response_model=OkResponse)
async def clear_feedback_draft(
    event_id: UUID,
    field_path: str,
    engine: EventGateEngine = Depends(get_engine),
    caller: Optional[CallerContext] = Depends(get_caller),
):
    return OkResponse(ok=await engine.clear_feedback_draft(caller, event_id, field_path))
