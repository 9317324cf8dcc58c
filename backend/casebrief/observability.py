from __future__ import annotations

from contextvars import ContextVar, Token
from datetime import datetime, timezone
import json
import logging
import re
from typing import Any, Mapping
from uuid import uuid4


REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="-")
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
_LOGGING_CONFIGURED = False

# Credentials that can reach a log line through query strings or AWS errors.
SECRET_KEY_NAMES = {"authorization", "cookie", "token", "password", "session_token"}
SECRET_KEY_FRAGMENTS = ("secret", "api_key", "access_key")
AWS_ACCESS_KEY_PATTERN = re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b")

# Document content is logged by size only.
CONTENT_KEY_NAMES = {
    "text",
    "case_text",
    "source_text",
    "summary",
    "refinement",
    "system_instruction",
    "user_message",
}

MAX_LOGGED_STRING = 240


def normalize_request_id(candidate: str | None) -> str:
    if candidate:
        trimmed = candidate.strip()
        if REQUEST_ID_PATTERN.fullmatch(trimmed):
            return trimmed
    return str(uuid4())


def set_request_id(request_id: str) -> Token[str]:
    return REQUEST_ID_CONTEXT.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    REQUEST_ID_CONTEXT.reset(token)


def get_request_id() -> str:
    return REQUEST_ID_CONTEXT.get()


def _is_secret_key(key: str) -> bool:
    normalized = key.strip().lower().replace("-", "_")
    return normalized in SECRET_KEY_NAMES or any(fragment in normalized for fragment in SECRET_KEY_FRAGMENTS)


def _scrub_text(value: str, *, max_length: int) -> str:
    scrubbed = AWS_ACCESS_KEY_PATTERN.sub("[REDACTED_AWS_ACCESS_KEY]", value)
    if len(scrubbed) > max_length:
        return f"{scrubbed[:max_length]}...[truncated]"
    return scrubbed


def sanitize_for_logging(value: Any, *, max_string_length: int = MAX_LOGGED_STRING) -> Any:
    """Make a value safe to attach to a log record.

    Secrets under credential-like keys are redacted and AWS access key ids are
    masked wherever they appear. Document content under a known key (source
    text, summaries, prompts) is replaced by its length; other long strings
    are clipped.
    """

    if isinstance(value, Mapping):
        sanitized: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            if _is_secret_key(name):
                sanitized[name] = "[REDACTED]"
            elif name.lower() in CONTENT_KEY_NAMES and isinstance(item, str):
                sanitized[name] = f"[{len(item)} chars]"
            else:
                sanitized[name] = sanitize_for_logging(item, max_string_length=max_string_length)
        return sanitized

    if isinstance(value, (list, tuple)):
        return [sanitize_for_logging(item, max_string_length=max_string_length) for item in value]

    if isinstance(value, bytes):
        return f"[{len(value)} bytes]"

    if isinstance(value, str):
        return _scrub_text(value, max_length=max_string_length)

    return value


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields are sanitised and inlined."""

    _RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

    def __init__(self, *, service: str | None = None) -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", get_request_id()),
        }
        if self._service:
            payload["service"] = self._service

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._RESERVED and key not in payload
        }
        payload.update(sanitize_for_logging(extras))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level_name: str, *, service: str | None = None) -> None:
    global _LOGGING_CONFIGURED
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name.upper(), logging.INFO))

    if _LOGGING_CONFIGURED or any(getattr(handler, "_casebrief_handler", False) for handler in root.handlers):
        _LOGGING_CONFIGURED = True
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(service=service))
    handler.addFilter(RequestIdFilter())
    handler._casebrief_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    _LOGGING_CONFIGURED = True
