"""API dependencies."""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from eventgate.auth.context import CallerContext
from eventgate.auth.middleware import extract_api_key, verify_api_key
from eventgate.auth.token import looks_like_jwt, subject_from_token
from eventgate.config import Environment, settings
from eventgate.db.base import async_session_factory
from eventgate.engine import EventGateEngine, Unauthenticated, resolve_caller

logger = logging.getLogger("eventgate.api")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_engine(session: AsyncSession = Depends(get_db_session)) -> EventGateEngine:
    return EventGateEngine(session)


def insecure_dev_enabled() -> bool:
    return settings.allow_insecure_dev and settings.env == Environment.DEVELOPMENT


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


async def get_caller(
    authorization: str | None = Header(None),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
    x_external_id: str | None = Header(None, alias="X-External-ID"),
    session: AsyncSession = Depends(get_db_session),
) -> CallerContext | None:
    """
    Resolve the caller for this request.

    Order:
    1. Insecure dev header X-External-ID (development only, explicitly enabled)
    2. Database API key (eg_... prefix) via Authorization: Bearer or X-API-Key
    3. Identity-provider session JWT via Authorization: Bearer

    Returns None when no credential is presented; engine operations turn
    that into Unauthenticated. Presented-but-invalid credentials fail here.
    """
    if x_external_id and insecure_dev_enabled():
        return await resolve_caller(session, x_external_id.strip(), "insecure_dev")

    api_key = extract_api_key(authorization, x_api_key)
    if api_key:
        user = await verify_api_key(session, api_key)
        if not user:
            raise Unauthenticated("Invalid API key")
        return CallerContext.from_user(user, "api_key")

    token = bearer_token(authorization)
    if token:
        if not looks_like_jwt(token):
            raise Unauthenticated("Unrecognized bearer credential")
        caller = await resolve_caller(session, subject_from_token(token), "jwt")
        if caller is None:
            raise Unauthenticated("No active user for session token")
        return caller

    return None


def validate_auth_config() -> None:
    """
    Validate authentication configuration at startup.

    Raises:
        RuntimeError: If configuration is insecure for the current environment
    """
    # Insecure dev mode is only allowed in development
    if settings.allow_insecure_dev and settings.env != Environment.DEVELOPMENT:
        raise RuntimeError(
            f"SECURITY ERROR: allow_insecure_dev=true is only permitted in development. "
            f"Current environment: {settings.env.value}. "
            f"Set EVENTGATE_ALLOW_INSECURE_DEV=false for {settings.env.value}."
        )

    if not settings.jwt_public_key_path:
        logger.info(
            "No EVENTGATE_JWT_PUBLIC_KEY_PATH configured. "
            "Session tokens will be rejected; only API keys (eg_...) authenticate."
        )

    if not settings.admin_emails:
        logger.warning("EVENTGATE_ADMIN_EMAILS is empty; no user will be granted the admin role")

    if settings.allow_insecure_dev:
        logger.warning(
            "=" * 80 + "\n"
            "WARNING: Running in INSECURE DEV MODE\n"
            "  - X-External-ID is trusted without verification\n"
            "  - This mode is ONLY for local development\n"
            "  - Set EVENTGATE_ALLOW_INSECURE_DEV=false for any deployment\n"
            + "=" * 80
        )
    else:
        logger.info(f"Authentication enabled for {settings.env.value}")
