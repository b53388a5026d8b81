"""Caller context threaded into every engine operation."""

from dataclasses import dataclass
from typing import Literal, TYPE_CHECKING
from uuid import UUID

from eventgate.models.enums import Role

if TYPE_CHECKING:
    from eventgate.auth.models import User


AuthType = Literal["api_key", "jwt", "insecure_dev", "internal"]


@dataclass(frozen=True)
class CallerContext:
    """Resolved identity and role of the caller for one request."""

    user_id: UUID
    role: Role
    external_id: str = ""
    name: str = ""
    auth_type: AuthType = "internal"

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_host(self) -> bool:
        return self.role == Role.HOST

    @classmethod
    def from_user(cls, user: "User", auth_type: AuthType = "internal") -> "CallerContext":
        return cls(
            user_id=user.id,
            role=user.role,
            external_id=user.external_id,
            name=user.name or "",
            auth_type=auth_type,
        )
