# devicehub/core/ratelimit.py
"""
Per-client-IP request throttling.

A global limit applies to every route through the middleware; the OTP
endpoints carry their own tighter limits via `@limiter.limit(...)`. Exceeding
a limit yields 429 with the usual {"success": False, "message", "code"} body.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from devicehub.config import settings
from devicehub.core.errors import RateLimited, error_body

logger = logging.getLogger("uvicorn.error")

OTP_SEND_LIMIT_MESSAGE = "Too many OTP requests. Please wait 5 minutes before trying again."
OTP_VERIFY_LIMIT_MESSAGE = "Too many verification attempts. Please wait 5 minutes before trying again."

limiter = Limiter(
    key_func=get_remote_address,
    application_limits=[settings.rate_limit_global],
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # Route limits carry their own message; the global limit uses the default
    message = getattr(exc.limit, "error_message", None)
    if not isinstance(message, str):
        message = RateLimited.message
    logger.warning(
        "[ratelimit] %s %s from %s: %s",
        request.method, request.url.path, get_remote_address(request), exc.detail,
    )
    return JSONResponse(status_code=RateLimited.status_code, content=error_body(RateLimited.code, message))


def install_rate_limiting(app: FastAPI) -> None:
    """Attach the limiter, its 429 handler and the global-limit middleware."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
