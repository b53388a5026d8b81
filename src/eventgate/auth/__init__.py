"""EventGate authentication module."""

from eventgate.auth.context import CallerContext
from eventgate.auth.models import User, APIKey
from eventgate.auth.middleware import (
    API_KEY_PREFIX,
    create_api_key_for_user,
    extract_api_key,
    generate_api_key,
    hash_api_key,
    verify_api_key,
    verify_api_key_hash,
)

__all__ = [
    "API_KEY_PREFIX",
    "APIKey",
    "CallerContext",
    "User",
    "create_api_key_for_user",
    "extract_api_key",
    "generate_api_key",
    "hash_api_key",
    "verify_api_key",
    "verify_api_key_hash",
]
