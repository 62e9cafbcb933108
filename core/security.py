"""HTTP middleware: rate limiting, CSRF double-submit cookie and security headers."""

import logging
import secrets
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.rate_limiting import RateLimiter
from core.settings import settings

logger = logging.getLogger(__name__)

MUTATION_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

rate_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)


def generate_csrf_token() -> str:
    return secrets.token_hex(16)


def _is_api_path(path: str) -> bool:
    return path.startswith(f"{settings.API_PREFIX}/")


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit mutation requests on API paths per client ip and path."""

    async def dispatch(self, request: Request, call_next):
        if (
            not settings.RATE_LIMIT_ENABLED
            or request.method not in MUTATION_METHODS
            or not _is_api_path(request.url.path)
        ):
            return await call_next(request)

        identifier = f"{_client_ip(request)}:{request.url.path}"
        result = rate_limiter.hit(identifier)
        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": datetime.fromtimestamp(result.reset_at, tz=timezone.utc).isoformat(),
        }

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {identifier}")
            headers["Retry-After"] = str(result.retry_after)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests, please try again later"},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie protection.

    Mutation requests to API paths must echo the ``csrf_token`` cookie in the
    ``X-CSRF-Token`` header. Authentication endpoints are exempt. Clients
    without the cookie get a fresh token on their next response.
    """

    async def dispatch(self, request: Request, call_next):
        cookie_token = request.cookies.get(settings.CSRF_COOKIE_NAME)

        if (
            settings.CSRF_ENABLED
            and request.method in MUTATION_METHODS
            and _is_api_path(request.url.path)
            and not request.url.path.startswith(f"{settings.API_PREFIX}/auth/")
        ):
            header_token = request.headers.get(settings.CSRF_HEADER_NAME)
            if not header_token or not cookie_token or not secrets.compare_digest(header_token, cookie_token):
                return JSONResponse(status_code=403, content={"detail": "Invalid CSRF token"})

        response = await call_next(request)

        if not cookie_token:
            token = getattr(request.state, "csrf_token", None) or generate_csrf_token()
            response.set_cookie(
                settings.CSRF_COOKIE_NAME,
                token,
                httponly=False,
                secure=settings.is_production,
                samesite="lax",
                path="/",
            )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
