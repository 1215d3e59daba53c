from __future__ import annotations

import os

from app.relay import constants
from app.relay.errors import ErrorKind, RelayError


def _int_env(name: str, default: int, minimum: int = 1) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _timeout_env(name: str, default: float | None) -> float | None:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError as exc:
		raise RelayError(ErrorKind.INTERNAL, f"{name} must be numeric.") from exc
	if value <= 0:
		raise RelayError(ErrorKind.INTERNAL, f"{name} must be greater than zero.")
	return value


def _flag_env(name: str, default: bool = False) -> bool:
	raw = os.getenv(name, "").strip().lower()
	if not raw:
		return default
	return raw not in {"0", "false", "off", "no"}


def system_prompt() -> str:
	return os.getenv("CHAT_SYSTEM_PROMPT", "").strip() or constants.DEFAULT_SYSTEM_PROMPT


def default_temperature() -> float:
	raw = os.getenv("CHAT_DEFAULT_TEMPERATURE", "").strip()
	if not raw:
		return constants.DEFAULT_TEMPERATURE
	try:
		return float(raw)
	except ValueError:
		return constants.DEFAULT_TEMPERATURE


def reserved_tokens() -> int:
	return _int_env("CHAT_RESERVED_TOKENS", constants.RESERVED_COMPLETION_TOKENS, minimum=0)


def max_completion_tokens() -> int:
	return _int_env("CHAT_MAX_COMPLETION_TOKENS", constants.MAX_COMPLETION_TOKENS)


def default_model_id() -> str:
	return os.getenv("CHAT_DEFAULT_MODEL", "").strip() or constants.DEFAULT_MODEL_ID


def upstream_timeout_s() -> float:
	return _timeout_env("CHAT_UPSTREAM_TIMEOUT_S", constants.DEFAULT_UPSTREAM_TIMEOUT_S)


def stream_deadline_s() -> float | None:
	return _timeout_env("CHAT_STREAM_DEADLINE_S", None)


def upstream_url() -> str:
	host = os.getenv("OPENAI_API_HOST", "").strip() or constants.DEFAULT_OPENAI_API_HOST
	return host.rstrip("/") + constants.CHAT_COMPLETIONS_PATH


def openai_api_key() -> str:
	return os.getenv("OPENAI_API_KEY", "").strip()


def openai_organization() -> str | None:
	return os.getenv("OPENAI_ORGANIZATION", "").strip() or None


def price_api_key() -> str:
	return os.getenv("BIRDEYE_API_KEY", "").strip()


def price_timeout_s() -> float:
	return _timeout_env("PRICE_FETCH_TIMEOUT_S", constants.DEFAULT_PRICE_TIMEOUT_S)


def log_level() -> str:
	return os.getenv("CHAT_LOG_LEVEL", "INFO").strip().upper() or "INFO"


def log_json() -> bool:
	return _flag_env("CHAT_LOG_JSON")
