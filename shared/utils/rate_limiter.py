"""
Rate limiting with slowapi.

Storage defaults to process memory; point RATE_LIMIT_STORAGE_URI at Redis
when several API instances must share counters.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, Response
from starlette.responses import JSONResponse
import hashlib
import logging

from app.core.config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()


def get_real_client_ip(request: Request) -> str:
    """Client IP, honouring the usual proxy headers"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # client, proxy1, proxy2
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


def get_user_identifier(request: Request) -> str:
    """IP plus a short token hash, so scanners behind one NAT do not share a bucket"""
    ip = get_real_client_ip(request)

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token_hash = hashlib.md5(auth_header.encode()).hexdigest()[:8]
        return f"{ip}:{token_hash}"

    return ip


limiter = Limiter(
    key_func=get_user_identifier,
    storage_uri=_settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    headers_enabled=False,  # incompatible with FastAPI response_model returns
    enabled=_settings.RATE_LIMIT_ENABLED,
)


RATE_LIMITS = {
    "sign": _settings.RATE_LIMIT_SIGN,
    "verify": _settings.RATE_LIMIT_VERIFY,
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """JSON 429 in the same error shape as the rest of the API"""
    logger.warning(
        f"Rate limit exceeded - IP: {get_real_client_ip(request)}, "
        f"Path: {request.url.path}, "
        f"Limit: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": {
                "code": "RATE_LIMITED",
                "message": "Too many requests. Please wait before trying again.",
            },
        },
        headers={"Retry-After": "60"},
    )
