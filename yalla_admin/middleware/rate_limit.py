"""Rate limiting middleware"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from yalla_admin.core.config import logger, settings
from yalla_admin.core.dependencies import get_client_ip
from yalla_admin.core.errors import ErrorCode, ErrorType
from yalla_admin.core.exception_handlers import error_response
from yalla_admin.services.rate_limiter import rate_limiter

PUBLIC_PATHS = ("/", "/health", "/docs", "/openapi.json", "/redoc")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP request limit per minute"""

    async def dispatch(self, request: Request, call_next):
        if not settings.enable_rate_limiting or request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        ip_address = get_client_ip(request) or "unknown"

        # Skip rate limiting for localhost in development
        if settings.is_development and ip_address in ("127.0.0.1", "localhost", "::1"):
            return await call_next(request)

        is_allowed, remaining = await rate_limiter.check_rate_limit_ip(ip_address)
        if not is_allowed:
            logger.warning(f"Rate limit exceeded for IP: {ip_address}")
            response = error_response(
                request,
                429,
                ErrorCode.RATE_LIMIT_EXCEEDED,
                "Слишком много запросов. Попробуйте позже",
                ErrorType.RATE_LIMIT,
            )
            response.headers["X-RateLimit-Limit"] = str(settings.rate_limit_per_minute)
            response.headers["X-RateLimit-Remaining"] = str(remaining)
            response.headers["Retry-After"] = "60"
            return response

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
