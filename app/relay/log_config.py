"""Logging setup for the relay.

Records may carry a ``context`` dict through ``extra={"context": {...}}``.
The JSON formatter emits it under ``ctx``; the text formatter appends it as
``key=value`` pairs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

from app.relay import constants


BASE_LOGGER_NAME = "app.relay"
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:
		ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
		payload = {
			"ts": ts.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
			"level": record.levelname,
			"module": record.name,
			"msg": record.getMessage(),
			"version": constants.APP_VERSION,
		}
		ctx = getattr(record, "context", None)
		if isinstance(ctx, dict) and ctx:
			payload["ctx"] = ctx
		if record.exc_info:
			payload["exc"] = self.formatException(record.exc_info)
		return json.dumps(payload, ensure_ascii=False, default=str)


class ContextTextFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:
		line = super().format(record)
		ctx = getattr(record, "context", None)
		if isinstance(ctx, dict) and ctx:
			pairs = " ".join(f"{key}={value}" for key, value in ctx.items())
			line = f"{line} [{pairs}]"
		return line


def setup_logging(
	*,
	level: str = "INFO",
	json_logs: bool = False,
	stream: Optional[TextIO] = None,
) -> logging.Logger:
	"""Configure the ``app.relay`` logger once and return it.

	Calling again only adjusts the level, so repeated app construction in tests
	does not stack handlers.
	"""
	logger = logging.getLogger(BASE_LOGGER_NAME)
	logger.setLevel(getattr(logging, level, logging.INFO))
	if getattr(logger, "_relay_configured", False):
		return logger

	handler = logging.StreamHandler(stream or sys.stderr)
	if json_logs:
		handler.setFormatter(JsonLogFormatter())
	else:
		handler.setFormatter(ContextTextFormatter(_TEXT_FORMAT))
	logger.addHandler(handler)
	logger.propagate = False
	logger._relay_configured = True  # type: ignore[attr-defined]
	return logger
