from .api_key import verify_api_key, verify_admin_key
from .dependencies import verify_internal_api_key, verify_admin_api_key
from .rate_limiter import limiter, actor_id_or_ip

__all__ = [
    "verify_api_key",
    "verify_admin_key",
    "verify_internal_api_key",
    "verify_admin_api_key",
    "limiter",
    "actor_id_or_ip"
]
