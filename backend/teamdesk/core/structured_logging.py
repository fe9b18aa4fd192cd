"""JSON log line helper.

Services log one JSON object per event so invitation and team activity can be
shipped to any collector and joined on the request/task correlation ID.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from teamdesk.core.request_context import get_request_id


def log_json(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Write ``event`` and ``fields`` as one JSON line, tagged with the correlation ID."""

    payload: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "event": event,
    }
    request_id = get_request_id()
    if request_id:
        payload["request_id"] = request_id

    # Drop empty optional fields so lines stay compact.
    payload.update({key: value for key, value in fields.items() if value is not None})
    logger.log(level, json.dumps(payload, default=str))


def configure_logging(level: int = logging.INFO) -> None:
    """Route JSON lines to stderr without a prefix, once per process."""

    root = logging.getLogger()
    if any(getattr(handler, "_teamdesk_json", False) for handler in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._teamdesk_json = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
