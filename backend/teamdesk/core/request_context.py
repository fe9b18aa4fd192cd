"""Correlation ID propagation for API requests and Celery tasks."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from uuid import uuid4

_MAX_REQUEST_ID_LENGTH = 128

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    """Return the correlation ID bound to the current context, if any."""

    return _request_id_var.get()


def bind_request_id(request_id: str | None) -> Token[str | None]:
    """Bind a correlation ID and return the token needed to unbind it."""

    return _request_id_var.set(request_id)


def unbind_request_id(token: Token[str | None]) -> None:
    _request_id_var.reset(token)


def sanitize_request_id(raw: str | None) -> str | None:
    """Accept a client-supplied ID only if it is short and single-line."""

    if not raw:
        return None
    candidate = raw.strip()
    if not candidate or len(candidate) > _MAX_REQUEST_ID_LENGTH:
        return None
    if "\n" in candidate or "\r" in candidate:
        return None
    return candidate


@contextmanager
def request_scope(request_id: str | None = None) -> Iterator[str]:
    """Bind ``request_id`` (or a fresh UUID) for the duration of the block."""

    bound = sanitize_request_id(request_id) or str(uuid4())
    token = bind_request_id(bound)
    try:
        yield bound
    finally:
        unbind_request_id(token)
