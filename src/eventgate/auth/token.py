"""Identity-provider session token verification."""

from __future__ import annotations

from typing import Any, Optional

from jose import JWTError, jwt

from eventgate.config import settings
from eventgate.engine.errors import Unauthenticated

_jwt_key_cache: Optional[str] = None


def looks_like_jwt(token: str) -> bool:
    return token.count(".") == 2


def _load_jwt_key() -> str:
    global _jwt_key_cache
    if _jwt_key_cache:
        return _jwt_key_cache

    if settings.jwt_public_key_path:
        with open(settings.jwt_public_key_path, "r", encoding="utf-8") as handle:
            _jwt_key_cache = handle.read()
            return _jwt_key_cache

    raise Unauthenticated("JWT verification key not configured")


def decode_session_token(token: str, key: Optional[str] = None) -> dict[str, Any]:
    """Verify signature and issuer; return the token claims."""
    options = {"verify_aud": False}
    try:
        return jwt.decode(
            token,
            key or _load_jwt_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options=options,
        )
    except JWTError as exc:
        raise Unauthenticated(f"Invalid session token: {exc}") from exc


def subject_from_token(token: str, key: Optional[str] = None) -> str:
    """Return the stable external identity (``sub``) carried by a session token."""
    claims = decode_session_token(token, key=key)
    subject = claims.get("sub")
    if not subject:
        raise Unauthenticated("Session token has no subject")
    return str(subject)
