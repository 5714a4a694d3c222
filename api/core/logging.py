"""
Logging setup: single-line JSON records with sensitive values masked.

Modules log through `logging.getLogger(__name__)`. Structured context goes in
`extra={"context": {...}}`; the formatter redacts any key that looks like a
credential before the record is written.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

SENSITIVE_KEYS = (
    "token",
    "password",
    "secret",
    "authorization",
    "api_key",
    "apikey",
    "cookie",
)
_MASK = "[REDACTED]"


def _is_sensitive(key: str) -> bool:
    # "token" and "access_token" are masked; "token_id" is not.
    lowered = key.lower().replace("-", "_")
    return lowered in SENSITIVE_KEYS or lowered.endswith(tuple("_" + k for k in SENSITIVE_KEYS))


def redact(value: Any) -> Any:
    """
    Return a copy of `value` with sensitive dict keys masked, recursively.
    """
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for key, item in value.items():
            if isinstance(key, str) and _is_sensitive(key):
                out[key] = _MASK
            else:
                out[key] = redact(item)
        return out
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload.update(redact(context))

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(level: str = "INFO", *, json_output: bool = True) -> None:
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
