"""
Authentication Models for EventGate

Users mirror identities from the external identity provider; the role is
resolved once on upsert and trusted afterwards. API keys give scripts and
service callers a stable credential mapped to a user.
"""

from sqlalchemy import Column, String, Boolean, Integer, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
import uuid

from eventgate.db.base import Base
from eventgate.db.types import JSONType, UTCDateTime, value_enum
from eventgate.models.enums import Role
from eventgate.utils.time import utc_now


class User(Base):
    """User account - upserted from the identity provider"""
    __tablename__ = "auth_users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id = Column(String(255), unique=True, nullable=False, index=True)  # provider subject
    email = Column(String(320), unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=False, default="")

    role = Column(value_enum(Role), nullable=False, default=Role.HOST)

    # Onboarding profile
    org_name = Column(String(255), nullable=True)
    website = Column(String(2048), nullable=True)
    socials = Column(JSONType, nullable=True)  # {"linkedin": ..., "x": ..., "instagram": ...}
    onboarding_completed = Column(Boolean, default=False, nullable=False)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    api_keys = relationship("APIKey", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_auth_users_role", "role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def __repr__(self):
        return f"<User {self.external_id} ({self.role.value if self.role else 'unknown'})>"


class APIKey(Base):
    """API keys for programmatic access"""
    __tablename__ = "auth_api_keys"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Key components
    key_prefix = Column(String, nullable=False, index=True)  # First 11 chars (eg_ + 8) for identification
    key_hash = Column(String, nullable=False, unique=True)   # bcrypt hash of full key

    # Key metadata
    name = Column(String, nullable=False)
    scopes = Column(JSONType, default=list, nullable=False)

    # Usage tracking
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    last_used = Column(UTCDateTime, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)

    # Expiry and revocation
    expires_at = Column(UTCDateTime, nullable=True)  # None = no expiry
    is_revoked = Column(Boolean, default=False, nullable=False)

    # Relationship
    user = relationship("User", back_populates="api_keys")

    @property
    def is_valid(self) -> bool:
        if self.is_revoked:
            return False
        if self.expires_at and utc_now() > self.expires_at:
            return False
        return True

    def increment_usage(self):
        """Track key usage"""
        self.usage_count += 1
        self.last_used = utc_now()
