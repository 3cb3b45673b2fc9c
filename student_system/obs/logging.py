"""JSON logging with per-request context and redaction of user-supplied text."""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from student_system.settings import settings

_LOGGER_NAME = "student_system"
_CONTEXT_FIELDS = ("request_id", "route", "user_id", "client_ip")

_context: ContextVar[Dict[str, str]] = ContextVar("student_system_log_context", default={})

# Keys whose values may carry credentials or user-authored text.
_REDACTED_KEYS = frozenset(
	{
		"authorization",
		"password",
		"password_hash",
		"token",
		"access_token",
		"secret",
		"email",
		"contact_email",
		"contact_phone",
		"content",
		"message",
		"title",
		"description",
	}
)

_MAX_TEXT = 256
_MAX_ITEMS = 10

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge ``fields`` into the logging context of the current request.

	Unknown names and None values are ignored. Pass the returned token to
	``reset_context`` when the request finishes.
	"""
	merged = dict(_context.get())
	for name, value in fields.items():
		if name in _CONTEXT_FIELDS and value is not None:
			merged[name] = str(value)
	return _context.set(merged)


def reset_context(token: Token) -> None:
	_context.reset(token)


def current_request_id() -> Optional[str]:
	return _context.get().get("request_id")


def _clip(value: Any) -> Any:
	if isinstance(value, str):
		return value if len(value) <= _MAX_TEXT else value[:_MAX_TEXT] + "..."
	if isinstance(value, dict):
		return {str(key): _scrub(str(key), item) for key, item in list(value.items())[:_MAX_ITEMS]}
	if isinstance(value, (list, tuple, set)):
		items = [_clip(item) for item in list(value)[:_MAX_ITEMS]]
		if len(value) > _MAX_ITEMS:
			items.append(f"+{len(value) - _MAX_ITEMS} more")
		return items
	return value


def _scrub(key: str, value: Any) -> Any:
	if key.lower() in _REDACTED_KEYS:
		return "[redacted]"
	return _clip(value)


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per line: base fields, request context, then extras."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		payload.update(_context.get())
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in vars(record).items():
			if key not in _RECORD_ATTRS and key not in payload:
				payload[key] = _scrub(key, value)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Drop a share of info records; warnings and errors always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(0.0, rate)


def configure_logging() -> logging.Logger:
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
