"""JSON logging for the service.

Each record becomes one JSON object: the event name as ``message``, the
cafe and process it came from, and whatever the call site passed in
``extra`` (``resource``, ``page``, ``target`` ...). ``LogRedactor`` masks
sensitive keys and messages in the same pass, so bearer tokens and cookies
never reach the log sink.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import traceback
from datetime import datetime, timezone
from typing import Any, Iterable

from .config import Settings

REDACTED = "[REDACTED]"

# attributes every LogRecord carries; anything else came from ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class LogRedactor:
    def __init__(self, patterns: Iterable[str]):
        self.patterns = [p.lower() for p in patterns if p]

    def matches(self, text: str) -> bool:
        text = text.lower()
        return any(p in text for p in self.patterns)

    def redact(self, payload: dict[str, Any]) -> dict[str, Any]:
        out = {}
        for key, value in payload.items():
            if self.matches(key):
                out[key] = REDACTED
            elif isinstance(value, dict):
                out[key] = self.redact(value)
            else:
                out[key] = value
        return out


class JsonLogFormatter(logging.Formatter):
    def __init__(self, settings: Settings):
        super().__init__()
        self.redactor = LogRedactor(settings.app_log_redaction_patterns)
        self.context = {
            "service": settings.service_name,
            "environment": settings.app_environment,
            "cafe_id": settings.icafe_cafe_id or None,
            "hostname": socket.gethostname(),
            "pid": os.getpid(),
        }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        message = record.getMessage()
        if self.redactor.matches(message):
            message = REDACTED
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            **self.context,
        }
        extras = {
            k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS
        }
        data.update(self.redactor.redact(extras))
        if record.exc_info:
            data["exception"] = _exception_fields(record.exc_info)
        return json.dumps(data, default=str)


def _exception_fields(exc_info) -> dict[str, Any]:
    exc_type, exc, tb = exc_info
    return {
        "type": exc_type.__name__,
        "message": str(exc),
        "stack": traceback.format_tb(tb),
    }


def configure_json_logging(settings: Settings) -> logging.Logger:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter(settings))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.app_log_level.upper(), logging.INFO))
    return root


__all__ = [
    "JsonLogFormatter",
    "LogRedactor",
    "configure_json_logging",
]
