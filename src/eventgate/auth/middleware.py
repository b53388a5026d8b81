"""
API key utilities for EventGate

Service callers and scripts authenticate with an API key bound to a user;
the key resolves to that user's caller context.
"""

from typing import Optional
import bcrypt
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.auth.models import User, APIKey


# API key prefix for EventGate
API_KEY_PREFIX = "eg_"


def hash_api_key(api_key: str) -> str:
    """Hash API key with bcrypt"""
    return bcrypt.hashpw(api_key.encode(), bcrypt.gensalt()).decode()


def verify_api_key_hash(api_key: str, key_hash: str) -> bool:
    """Verify API key against hash"""
    return bcrypt.checkpw(api_key.encode(), key_hash.encode())


def generate_api_key() -> tuple[str, str, str]:
    """Generate API key with prefix and hash

    Returns:
        tuple: (full_key, prefix, hash)
    """
    full_key = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    prefix = full_key[:11]  # "eg_" + first 8 chars
    key_hash = hash_api_key(full_key)
    return full_key, prefix, key_hash


def extract_api_key(authorization: Optional[str], x_api_key: Optional[str]) -> Optional[str]:
    """Pull an EventGate API key out of Authorization: Bearer or X-API-Key."""
    candidate = None
    if authorization:
        parts = authorization.split(" ", 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            candidate = parts[1].strip()
    if not candidate and x_api_key:
        candidate = x_api_key.strip()
    if not candidate or not candidate.startswith(API_KEY_PREFIX):
        return None
    return candidate


async def verify_api_key(db: AsyncSession, api_key: str) -> Optional[User]:
    """
    Resolve an API key to its active user.

    Returns None for unknown, revoked, expired or mismatched keys.
    """
    key_prefix = api_key[:11]

    result = await db.execute(
        select(APIKey).where(APIKey.key_prefix == key_prefix, APIKey.is_revoked.is_(False))
    )
    for api_key_obj in result.scalars().all():
        if not verify_api_key_hash(api_key, api_key_obj.key_hash):
            continue
        if not api_key_obj.is_valid:
            return None

        api_key_obj.increment_usage()
        await db.flush()

        user = await db.get(User, api_key_obj.user_id)
        if user is None or not user.is_active:
            return None
        return user

    return None


async def create_api_key_for_user(
    db: AsyncSession,
    user: User,
    name: str = "Default API Key",
    scopes: list[str] | None = None
) -> tuple[str, APIKey]:
    """Create a new API key for a user.

    Returns:
        tuple: (full_key_string, api_key_object)
        Note: full_key_string is only returned once and should be shown to user
    """
    full_key, prefix, key_hash = generate_api_key()

    api_key = APIKey(
        user_id=user.id,
        key_prefix=prefix,
        key_hash=key_hash,
        name=name,
        scopes=scopes or [],
    )
    db.add(api_key)
    await db.flush()

    return full_key, api_key
