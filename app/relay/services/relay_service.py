from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from app.relay.errors import RelayError
from app.relay.services.upstream_service import StreamHandle


logger = logging.getLogger(__name__)

DisconnectProbe = Callable[[], Awaitable[bool]]


async def relay(
	handle: StreamHandle,
	*,
	is_disconnected: Optional[DisconnectProbe] = None,
	deadline_s: Optional[float] = None,
) -> AsyncIterator[bytes]:
	loop = asyncio.get_running_loop()
	deadline = loop.time() + deadline_s if deadline_s is not None else None
	chunks = handle.__aiter__()
	forwarded = 0
	outcome = "completed"
	try:
		while True:
			if is_disconnected is not None and await is_disconnected():
				outcome = "disconnected"
				break
			if deadline is None:
				next_chunk = chunks.__anext__()
			else:
				remaining = deadline - loop.time()
				if remaining <= 0:
					outcome = "deadline"
					break
				next_chunk = asyncio.wait_for(chunks.__anext__(), timeout=remaining)
			try:
				chunk = await next_chunk
			except StopAsyncIteration:
				break
			except asyncio.TimeoutError:
				outcome = "deadline"
				break
			forwarded += 1
			yield chunk.encode("utf-8")
	except RelayError as exc:
		outcome = exc.kind.value
		logger.warning(
			"upstream stream ended early",
			extra={"context": {"kind": exc.kind.value, "forwarded": forwarded, "reason": exc.message}},
		)
	except (asyncio.CancelledError, GeneratorExit):
		outcome = "cancelled"
		raise
	finally:
		try:
			await chunks.aclose()
		finally:
			await handle.aclose()
		logger.info("relay closed", extra={"context": {"outcome": outcome, "forwarded": forwarded}})
