from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

import httpx

from app.relay import constants
from app.relay.errors import ErrorKind


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceFact:
	value: float


@dataclass(frozen=True)
class SearchResultsFact:
	documents: Tuple[str, ...]


ContextFact = Union[PriceFact, SearchResultsFact, None]


def is_price_query(text: str) -> bool:
	lowered = text.lower()
	return any(phrase in lowered for phrase in constants.PRICE_TRIGGER_PHRASES)


def _extract_price(payload: Any) -> Optional[float]:
	if not isinstance(payload, dict):
		return None
	data = payload.get("data")
	if not isinstance(data, dict):
		return None
	value = data.get("value")
	if isinstance(value, bool) or not isinstance(value, (int, float)):
		return None
	try:
		price = float(value)
	except OverflowError:
		return None
	if not math.isfinite(price) or price == 0:
		return None
	return price


def _fetch_failed(reason: str, **context: Any) -> None:
	logger.warning(
		"price fetch failed",
		extra={"context": {"kind": ErrorKind.CONTEXT_FETCH_FAILED.value, "reason": reason, **context}},
	)


async def fetch_price(
	*,
	api_key: str,
	timeout_s: float = constants.DEFAULT_PRICE_TIMEOUT_S,
	client: httpx.AsyncClient | None = None,
) -> Optional[float]:
	"""Current NOS price in USD, or ``None`` when it cannot be obtained."""
	params = {"address": constants.NOS_TOKEN_ADDRESS}
	headers = {"X-API-KEY": api_key}
	try:
		if client is None:
			async with httpx.AsyncClient(timeout=timeout_s) as owned:
				response = await owned.get(constants.PRICE_ENDPOINT, params=params, headers=headers)
		else:
			response = await client.get(
				constants.PRICE_ENDPOINT,
				params=params,
				headers=headers,
				timeout=timeout_s,
			)
	except httpx.TimeoutException:
		_fetch_failed("timeout", timeout_s=timeout_s)
		return None
	except httpx.HTTPError as exc:
		_fetch_failed("transport", error=exc.__class__.__name__)
		return None

	if not response.is_success:
		_fetch_failed("status", status_code=response.status_code)
		return None
	try:
		payload = response.json()
	except ValueError:
		_fetch_failed("invalid_json")
		return None

	price = _extract_price(payload)
	if price is None:
		_fetch_failed("shape_mismatch")
		return None
	logger.info("price fetched", extra={"context": {"price": price}})
	return price


async def resolve_context(
	user_message: str,
	search_results: Optional[Sequence[str]] = None,
	*,
	api_key: str,
	timeout_s: float = constants.DEFAULT_PRICE_TIMEOUT_S,
	client: httpx.AsyncClient | None = None,
) -> ContextFact:
	if is_price_query(user_message):
		price = await fetch_price(api_key=api_key, timeout_s=timeout_s, client=client)
		fact: ContextFact = PriceFact(price) if price is not None else None
	elif search_results is not None:
		fact = SearchResultsFact(tuple(search_results))
	else:
		fact = None
	logger.debug("context resolved", extra={"context": {"fact": type(fact).__name__}})
	return fact
