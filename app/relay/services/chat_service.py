from __future__ import annotations

import logging

import httpx

from app.relay import config
from app.relay.errors import RelayError
from app.relay.schemas import ChatRequest, ModelSpec
from app.relay.services import budget_service, context_service, model_service, upstream_service
from app.relay.services.context_service import ContextFact
from app.relay.services.upstream_service import StreamHandle


logger = logging.getLogger(__name__)


def _resolve_model(payload: ChatRequest) -> ModelSpec:
	if payload.model is not None:
		return payload.model
	return model_service.default_model_spec()


async def start_chat(
	payload: ChatRequest,
	*,
	client: httpx.AsyncClient | None = None,
) -> StreamHandle:
	model = _resolve_model(payload)
	system_prompt = config.system_prompt()
	temperature = payload.temperature if payload.temperature is not None else config.default_temperature()
	api_key = (payload.key or "").strip() or config.openai_api_key()
	url = (payload.url or "").strip() or config.upstream_url()

	fact: ContextFact = None
	if payload.messages:
		fact = await context_service.resolve_context(
			payload.messages[-1].content,
			payload.search_results,
			api_key=config.price_api_key(),
			timeout_s=config.price_timeout_s(),
			client=client,
		)

	plan = budget_service.build_plan(
		model,
		system_prompt,
		fact,
		payload.messages,
		reserved_tokens=config.reserved_tokens(),
	)

	handle = await upstream_service.open_stream(
		url=url,
		model=model,
		plan=plan,
		api_key=api_key,
		temperature=temperature,
		organization=config.openai_organization(),
		max_tokens=config.max_completion_tokens(),
		timeout_s=config.upstream_timeout_s(),
		client=client,
	)
	try:
		await handle.prime()
	except RelayError as exc:
		await handle.aclose()
		logger.warning(
			"upstream failed before first chunk",
			extra={"context": {"kind": exc.kind.value, "model": model.id}},
		)
		raise
	except BaseException:
		await handle.aclose()
		raise
	return handle
