"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

HTTP_REQUESTS_TOTAL = Counter(
    "teamdesk_http_requests_total",
    "Total number of HTTP requests.",
    ["method", "route", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "teamdesk_http_request_duration_seconds",
    "HTTP request duration in seconds.",
    ["method", "route", "status"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

INVITATION_EVENTS_TOTAL = Counter(
    "teamdesk_invitation_events_total",
    "Invitation lifecycle events delivered by the event dispatcher.",
    ["event"],
)

INVITATION_NOTIFICATION_FAILURES_TOTAL = Counter(
    "teamdesk_invitation_notification_failures_total",
    "Invitation e-mails that could not be delivered.",
)

INVITATIONS_EXPIRED_TOTAL = Counter(
    "teamdesk_invitations_expired_total",
    "Pending invitations moved to expired by the sweep.",
)


def observe_http_request(
    *,
    method: str,
    route: str,
    status_code: int,
    duration_ms: float,
) -> None:
    status = str(status_code)
    HTTP_REQUESTS_TOTAL.labels(method=method, route=route, status=status).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(
        method=method, route=route, status=status
    ).observe(duration_ms / 1000.0)


def record_invitation_event(event_name: str, count: int = 1) -> None:
    INVITATION_EVENTS_TOTAL.labels(event=event_name).inc(count)
