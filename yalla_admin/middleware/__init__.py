"""Middleware modules"""

from yalla_admin.middleware.logging import StructuredLoggingMiddleware
from yalla_admin.middleware.rate_limit import RateLimitMiddleware
from yalla_admin.middleware.security_headers import SecurityHeadersMiddleware

__all__ = ["RateLimitMiddleware", "SecurityHeadersMiddleware", "StructuredLoggingMiddleware"]
