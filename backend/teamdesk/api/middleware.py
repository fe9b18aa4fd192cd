"""Middleware for security headers, rate limiting and request logging."""

import logging
import time
from collections import defaultdict
from datetime import UTC, datetime, timedelta

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from teamdesk.core.config import get_settings
from teamdesk.core.metrics import observe_http_request
from teamdesk.core.request_context import request_scope
from teamdesk.core.security import decode_token
from teamdesk.core.structured_logging import log_json

logger = logging.getLogger(__name__)
settings = get_settings()

INVITE_PATHS = ("/api/invitations", "/api/invitations/bulk")
ACCEPT_PATH = "/api/invitations/accept"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add basic security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")

        if settings.environment == "production":
            forwarded_proto = request.headers.get("x-forwarded-proto")
            scheme = forwarded_proto or request.url.scheme
            if scheme == "https":
                response.headers.setdefault(
                    "Strict-Transport-Security",
                    "max-age=63072000; includeSubDomains",
                )

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-process rate limiting for the invitation endpoints (production only).

    - Sending invitations: RATE_LIMIT_INVITE_PER_HOUR per user
    - Accepting invitations: RATE_LIMIT_ACCEPT_INVITE_PER_HOUR per IP
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        # {(bucket, identifier): [timestamp, ...]}
        self._requests: dict[tuple[str, str], list[datetime]] = defaultdict(list)

    def _hit(self, bucket: str, identifier: str, window: timedelta, limit: int) -> bool:
        """Record a request; False once the window already holds ``limit`` hits."""
        key = (bucket, identifier)
        now = datetime.now(UTC)
        cutoff = now - window
        self._requests[key] = [ts for ts in self._requests[key] if ts > cutoff]
        if len(self._requests[key]) >= limit:
            return False
        self._requests[key].append(now)
        return True

    @staticmethod
    def _user_or_ip_identifier(request: Request) -> str:
        """Prefer JWT subject for identification, fallback to client IP."""
        client_ip = request.client.host if request.client else "unknown"
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            payload = decode_token(auth_header.removeprefix("Bearer ").strip())
            if payload and payload.get("sub"):
                return str(payload["sub"])
        return client_ip

    async def dispatch(self, request: Request, call_next):
        if settings.environment != "production" or request.method != "POST":
            return await call_next(request)

        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        if path in INVITE_PATHS:
            allowed = self._hit(
                "invite",
                self._user_or_ip_identifier(request),
                timedelta(hours=1),
                settings.rate_limit_invite_per_hour,
            )
            if not allowed:
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"detail": "Too many invitation requests. Please try again later."},
                )
        elif path == ACCEPT_PATH:
            allowed = self._hit(
                "accept",
                client_ip,
                timedelta(hours=1),
                settings.rate_limit_accept_invite_per_hour,
            )
            if not allowed:
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"detail": "Too many attempts. Please try again later."},
                )

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one JSON line per request and bind the correlation ID.

    Logs method, path, status code, duration and client IP.
    """

    async def dispatch(self, request: Request, call_next):
        incoming_request_id = request.headers.get("X-Request-ID") or request.headers.get(
            "X-Correlation-ID"
        )

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

        with request_scope(incoming_request_id) as request_id:
            request.state.request_id = request_id
            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log_json(
                    logger,
                    logging.ERROR,
                    "request_error",
                    method=method,
                    path=path,
                    status_code=500,
                    duration_ms=round(duration_ms, 2),
                    client_ip=client_ip,
                    error=str(exc),
                    exception=exc.__class__.__name__,
                )
                raise

            response.headers.setdefault("X-Request-ID", request_id)
            duration_ms = (time.perf_counter() - start_time) * 1000

            route_obj = request.scope.get("route")
            route_template = getattr(route_obj, "path", None) if route_obj else None
            if not route_template:
                route_template = "unmatched"

            observe_http_request(
                method=method,
                route=route_template,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            if response.status_code >= 500:
                level = logging.ERROR
            elif response.status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO

            log_json(
                logger,
                level,
                "request",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                client_ip=client_ip,
            )

            return response
