"""
Internal service keys.

The collaborator that holds the user's identity/session calls the
coordinator with X-Internal-API-Key. Administrative endpoints additionally
need X-Admin-API-Key. Missing keys fall back to loud insecure defaults so
local development still works while production misconfiguration is visible.
"""
import os
import secrets
import warnings


def _load_key(env_name: str, fallback: str) -> str:
    value = os.getenv(env_name, "")
    if not value:
        warnings.warn(
            f"{env_name} is not set. Using an insecure default. "
            "Set this env var in production!",
            stacklevel=3,
        )
        value = fallback
    return value


INTERNAL_API_KEY: str = _load_key("INTERNAL_API_KEY", "insecure-default-change-me")
ADMIN_API_KEY: str = _load_key("ADMIN_API_KEY", "insecure-admin-default-change-me")


def verify_api_key(provided_key: str) -> bool:
    """Verify an API key using constant-time comparison to prevent timing attacks."""
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key), str(INTERNAL_API_KEY))


def verify_admin_key(provided_key: str) -> bool:
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key), str(ADMIN_API_KEY))
