from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from shared.config import settings

def actor_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    The calling collaborator forwards the acting user in X-Actor-Id.
    Falls back to the client's IP address when the header is absent.
    """
    actor_id = request.headers.get("X-Actor-Id")
    if actor_id:
        return f"actor:{actor_id}"
    return f"ip:{get_remote_address(request)}"

# Initialize the Limiter with our custom key function
limiter = Limiter(key_func=actor_id_or_ip, enabled=settings.RATE_LIMIT_ENABLED)
