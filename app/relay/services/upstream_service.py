from __future__ import annotations

import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from app.relay import constants
from app.relay.errors import ErrorKind, RelayError
from app.relay.schemas import ModelSpec
from app.relay.services.budget_service import Plan


logger = logging.getLogger(__name__)

_DONE_MARKER = "[DONE]"
_SSE_IGNORED_FIELDS = ("event:", "id:", "retry:")
_MAX_ERROR_TEXT = 500


def build_request_body(
	*,
	model: ModelSpec,
	plan: Plan,
	temperature: float,
	max_tokens: int = constants.MAX_COMPLETION_TOKENS,
) -> Dict[str, Any]:
	messages: List[Dict[str, str]] = [{"role": "system", "content": plan.system_prompt}]
	messages.extend({"role": message.role, "content": message.content} for message in plan.messages)
	return {
		"model": model.id,
		"messages": messages,
		"max_tokens": max_tokens,
		"temperature": temperature,
		"stream": True,
	}


def _status_kind(status_code: int) -> ErrorKind:
	if status_code in {401, 403}:
		return ErrorKind.UPSTREAM_AUTH
	if status_code == 429:
		return ErrorKind.UPSTREAM_RATE_LIMIT
	if status_code >= 500:
		return ErrorKind.UPSTREAM_TRANSPORT
	return ErrorKind.UPSTREAM_PROTOCOL


def _error_message(raw: bytes) -> Optional[str]:
	text = raw.decode("utf-8", errors="replace").strip()
	if not text:
		return None
	try:
		payload = json.loads(text)
	except ValueError:
		return text[:_MAX_ERROR_TEXT]
	if isinstance(payload, dict):
		error = payload.get("error")
		if isinstance(error, dict) and isinstance(error.get("message"), str):
			return error["message"]
		if isinstance(error, str):
			return error
		if isinstance(payload.get("message"), str):
			return payload["message"]
	return text[:_MAX_ERROR_TEXT]


def parse_event_data(data: str) -> Optional[str]:
	"""Text of one ``data:`` payload, or ``None`` for events without text."""
	try:
		payload = json.loads(data)
	except ValueError as exc:
		raise RelayError(ErrorKind.UPSTREAM_PROTOCOL, "Upstream sent an undecodable event.") from exc
	if not isinstance(payload, dict):
		raise RelayError(ErrorKind.UPSTREAM_PROTOCOL, "Upstream sent a non-object event.")
	if "error" in payload:
		raise RelayError(
			ErrorKind.UPSTREAM_PROTOCOL,
			"Upstream reported an error mid-stream.",
			upstream_message=_error_message(data.encode("utf-8")),
		)
	choices = payload.get("choices")
	if not isinstance(choices, list):
		raise RelayError(ErrorKind.UPSTREAM_PROTOCOL, "Upstream event has no choices.")
	if not choices or not isinstance(choices[0], dict):
		return None
	delta = choices[0].get("delta")
	if not isinstance(delta, dict):
		return None
	content = delta.get("content")
	if isinstance(content, str) and content:
		return content
	return None


class StreamHandle:
	"""Single-use reader over an open chat-completion response."""

	def __init__(self, response: httpx.Response, *, owned_client: httpx.AsyncClient | None = None):
		self._response = response
		self._owned_client = owned_client
		self._lines = response.aiter_lines()
		self._pending: Optional[str] = None
		self._started = False
		self._finished = False
		self._closed = False
		self.chunks_read = 0

	@property
	def closed(self) -> bool:
		return self._closed

	@property
	def finished(self) -> bool:
		return self._finished

	async def prime(self) -> None:
		if self._started or self._pending is not None or self._finished:
			return
		self._pending = await self._next_chunk()

	async def _next_chunk(self) -> Optional[str]:
		while not self._finished:
			try:
				line = await self._lines.__anext__()
			except StopAsyncIteration:
				self._finished = True
				return None
			except httpx.TimeoutException as exc:
				raise RelayError(ErrorKind.UPSTREAM_TRANSPORT, "Upstream read timed out.") from exc
			except httpx.DecodingError as exc:
				raise RelayError(ErrorKind.UPSTREAM_PROTOCOL, "Upstream body could not be decoded.") from exc
			except httpx.TransportError as exc:
				raise RelayError(ErrorKind.UPSTREAM_TRANSPORT, "Upstream connection dropped.") from exc
			except (httpx.HTTPError, httpx.StreamError) as exc:
				raise RelayError(ErrorKind.UPSTREAM_TRANSPORT, "Upstream stream failed.") from exc

			line = line.strip()
			if not line or line.startswith(":") or line.startswith(_SSE_IGNORED_FIELDS):
				continue
			if not line.startswith("data:"):
				raise RelayError(
					ErrorKind.UPSTREAM_PROTOCOL,
					"Upstream response is not an event stream.",
					upstream_message=_error_message(line.encode("utf-8")),
				)
			data = line[len("data:"):].strip()
			if data == _DONE_MARKER:
				self._finished = True
				return None
			chunk = parse_event_data(data)
			if chunk is not None:
				self.chunks_read += 1
				return chunk
		return None

	def __aiter__(self) -> AsyncIterator[str]:
		if self._started:
			raise RuntimeError("Upstream stream has already been consumed.")
		self._started = True
		return self._iterate()

	async def _iterate(self) -> AsyncIterator[str]:
		if self._pending is not None:
			chunk, self._pending = self._pending, None
			yield chunk
		while not self._closed:
			chunk = await self._next_chunk()
			if chunk is None:
				return
			yield chunk

	async def aclose(self) -> None:
		if self._closed:
			return
		self._closed = True
		try:
			await self._response.aclose()
		finally:
			if self._owned_client is not None:
				await self._owned_client.aclose()


async def open_stream(
	*,
	url: str,
	model: ModelSpec,
	plan: Plan,
	api_key: str,
	temperature: float,
	organization: str | None = None,
	max_tokens: int = constants.MAX_COMPLETION_TOKENS,
	timeout_s: float = constants.DEFAULT_UPSTREAM_TIMEOUT_S,
	client: httpx.AsyncClient | None = None,
) -> StreamHandle:
	if not api_key:
		raise RelayError(ErrorKind.UPSTREAM_AUTH, "No upstream API key configured.")

	headers = {
		"Content-Type": "application/json",
		"Authorization": f"Bearer {api_key}",
	}
	if organization:
		headers["OpenAI-Organization"] = organization
	body = build_request_body(model=model, plan=plan, temperature=temperature, max_tokens=max_tokens)

	owned_client = httpx.AsyncClient(timeout=timeout_s) if client is None else None
	http = client or owned_client
	started = time.perf_counter()
	try:
		request = http.build_request("POST", url, json=body, headers=headers, timeout=timeout_s)
		response = await http.send(request, stream=True)
	except httpx.TimeoutException as exc:
		if owned_client is not None:
			await owned_client.aclose()
		logger.warning("upstream open timed out", extra={"context": {"url": url, "model": model.id}})
		raise RelayError(ErrorKind.UPSTREAM_TRANSPORT, "Upstream request timed out.") from exc
	except httpx.DecodingError as exc:
		if owned_client is not None:
			await owned_client.aclose()
		logger.warning("upstream response undecodable", extra={"context": {"url": url, "model": model.id}})
		raise RelayError(ErrorKind.UPSTREAM_PROTOCOL, "Upstream response could not be decoded.") from exc
	except (httpx.HTTPError, httpx.InvalidURL) as exc:
		if owned_client is not None:
			await owned_client.aclose()
		logger.warning(
			"upstream open failed",
			extra={"context": {"url": url, "model": model.id, "error": exc.__class__.__name__}},
		)
		raise RelayError(ErrorKind.UPSTREAM_TRANSPORT, "Upstream request failed.") from exc

	if not response.is_success:
		try:
			raw = await response.aread()
		except httpx.HTTPError:
			raw = b""
		finally:
			await response.aclose()
			if owned_client is not None:
				await owned_client.aclose()
		kind = _status_kind(response.status_code)
		logger.warning(
			"upstream rejected request",
			extra={"context": {"url": url, "model": model.id, "status_code": response.status_code, "kind": kind.value}},
		)
		raise RelayError(
			kind,
			f"Upstream returned HTTP {response.status_code}.",
			upstream_message=_error_message(raw),
			status_code=response.status_code,
		)

	logger.info(
		"upstream stream opened",
		extra={
			"context": {
				"url": url,
				"model": model.id,
				"messages": len(plan.messages),
				"elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
			}
		},
	)
	return StreamHandle(response, owned_client=owned_client)
