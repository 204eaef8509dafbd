from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from core.config import settings
from core.exceptions import InvalidTokenError


def get_user_id(request: Request) -> str:
    """
    Rate-limit key: the user id of a valid bearer token, else the client IP.
    """
    # Imported here: utils.deps pulls in the whole service layer
    from utils.deps import get_jwt_service

    header = request.headers.get("Authorization")
    if header and header.lower().startswith("bearer "):
        try:
            payload = get_jwt_service().decode(header[7:].strip())
            if payload.get("id") is not None:
                return f"user:{payload['id']}"
        except InvalidTokenError:
            pass

    return get_remote_address(request)

limiter = Limiter(
    key_func=get_user_id,
    default_limits=["200/hour"],
    enabled=settings.RATE_LIMIT_ENABLED
)
