"""Event lifecycle transition table.

Every validated lifecycle operation consults this table; nothing else in the
codebase compares status values to decide legality. Admin force is the one
path that does not go through it.
"""

from enum import Enum

from eventgate.engine.errors import InvalidState, Unauthorized
from eventgate.models import EventStatus, Role


class LifecycleAction(str, Enum):
    """Operations gated by the transition table."""

    CREATE = "create"
    UPDATE = "update"
    SUBMIT = "submit"
    DELETE = "delete"
    REQUEST_CHANGES = "request_changes"
    APPROVE = "approve"
    PUBLISH = "publish"
    # Host-side only; admins may set the URL from any status
    SET_REGISTRATION_URL = "set_registration_url"


# status -> action -> resulting status (same status = allowed, no move)
TRANSITIONS: dict[EventStatus, dict[LifecycleAction, EventStatus]] = {
    EventStatus.DRAFT: {
        LifecycleAction.UPDATE: EventStatus.DRAFT,
        LifecycleAction.SUBMIT: EventStatus.SUBMITTED,
        LifecycleAction.DELETE: EventStatus.DRAFT,
    },
    EventStatus.SUBMITTED: {
        LifecycleAction.REQUEST_CHANGES: EventStatus.CHANGES_REQUESTED,
        LifecycleAction.APPROVE: EventStatus.APPROVED,
    },
    EventStatus.CHANGES_REQUESTED: {
        LifecycleAction.UPDATE: EventStatus.CHANGES_REQUESTED,
        LifecycleAction.SUBMIT: EventStatus.RESUBMITTED,
    },
    EventStatus.RESUBMITTED: {
        LifecycleAction.REQUEST_CHANGES: EventStatus.CHANGES_REQUESTED,
        LifecycleAction.APPROVE: EventStatus.APPROVED,
    },
    EventStatus.APPROVED: {
        LifecycleAction.PUBLISH: EventStatus.PUBLISHED,
        LifecycleAction.SET_REGISTRATION_URL: EventStatus.APPROVED,
    },
    EventStatus.PUBLISHED: {
        LifecycleAction.SET_REGISTRATION_URL: EventStatus.PUBLISHED,
    },
}

ACTION_ROLES: dict[LifecycleAction, frozenset[Role]] = {
    LifecycleAction.CREATE: frozenset({Role.HOST}),
    LifecycleAction.UPDATE: frozenset({Role.HOST}),
    LifecycleAction.SUBMIT: frozenset({Role.HOST}),
    LifecycleAction.DELETE: frozenset({Role.HOST}),
    LifecycleAction.REQUEST_CHANGES: frozenset({Role.ADMIN}),
    LifecycleAction.APPROVE: frozenset({Role.ADMIN}),
    LifecycleAction.PUBLISH: frozenset({Role.ADMIN}),
    LifecycleAction.SET_REGISTRATION_URL: frozenset({Role.HOST}),
}


def allowed_actions(status: EventStatus) -> set[LifecycleAction]:
    """Return the actions legal from a status."""
    return set(TRANSITIONS.get(status, {}))


def can_perform(status: EventStatus, action: LifecycleAction) -> bool:
    return action in TRANSITIONS.get(status, {})


def require_transition(status: EventStatus, action: LifecycleAction) -> EventStatus:
    """Return the status an action leads to, or raise InvalidState."""
    target = TRANSITIONS.get(status, {}).get(action)
    if target is None:
        raise InvalidState(status.value, action.value)
    return target


def require_role(role: Role, action: LifecycleAction) -> None:
    """Raise Unauthorized if the role may not perform the action."""
    if role not in ACTION_ROLES[action]:
        raise Unauthorized(f"Role {role.value} may not {action.value} events")
