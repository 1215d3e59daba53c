from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
	UPSTREAM_AUTH = "upstream_auth"
	UPSTREAM_RATE_LIMIT = "upstream_rate_limit"
	UPSTREAM_TRANSPORT = "upstream_transport"
	UPSTREAM_PROTOCOL = "upstream_protocol"
	CONTEXT_FETCH_FAILED = "context_fetch_failed"
	INTERNAL = "internal"


_UPSTREAM_KINDS = {
	ErrorKind.UPSTREAM_AUTH,
	ErrorKind.UPSTREAM_RATE_LIMIT,
	ErrorKind.UPSTREAM_TRANSPORT,
	ErrorKind.UPSTREAM_PROTOCOL,
}

_GENERIC_UPSTREAM_MESSAGES = {
	ErrorKind.UPSTREAM_AUTH: "Upstream provider rejected the credentials.",
	ErrorKind.UPSTREAM_RATE_LIMIT: "Upstream provider rate limit exceeded.",
	ErrorKind.UPSTREAM_TRANSPORT: "Upstream provider could not be reached.",
	ErrorKind.UPSTREAM_PROTOCOL: "Upstream provider returned an unexpected response.",
}

UPSTREAM_FAILURE_STATUS = 502
INTERNAL_FAILURE_STATUS = 500
INTERNAL_FAILURE_MESSAGE = "Internal server error."


class RelayError(Exception):
	def __init__(
		self,
		kind: ErrorKind,
		message: str,
		*,
		upstream_message: str | None = None,
		status_code: int | None = None,
	):
		super().__init__(message)
		self.kind = kind
		self.message = message
		self.upstream_message = upstream_message
		self.status_code = status_code

	@property
	def is_upstream(self) -> bool:
		return self.kind in _UPSTREAM_KINDS


@dataclass(frozen=True)
class Classification:
	status_code: int
	code: str
	message: str


def classify(exc: BaseException) -> Classification:
	"""Map a pipeline failure to the status and reason shown to the caller.

	Upstream failures carry the provider's own message when one was captured.
	Everything else collapses to a generic internal failure so planning and
	configuration details never reach the client.
	"""
	if isinstance(exc, RelayError) and exc.is_upstream:
		message = (exc.upstream_message or "").strip() or _GENERIC_UPSTREAM_MESSAGES[exc.kind]
		return Classification(
			status_code=UPSTREAM_FAILURE_STATUS,
			code=exc.kind.value,
			message=message,
		)
	return Classification(
		status_code=INTERNAL_FAILURE_STATUS,
		code="internal_error",
		message=INTERNAL_FAILURE_MESSAGE,
	)
