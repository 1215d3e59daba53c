from __future__ import annotations

from unittest import IsolatedAsyncioTestCase, TestCase

import httpx

from app.relay import constants
from app.relay.services import budget_service, context_service
from app.relay.services.context_service import PriceFact, SearchResultsFact


def _price_client(handler, calls: list) -> httpx.AsyncClient:
	def record(request: httpx.Request) -> httpx.Response:
		calls.append(request)
		return handler(request)

	return httpx.AsyncClient(transport=httpx.MockTransport(record))


class PriceIntentTests(TestCase):
	def test_trigger_phrases_match_case_insensitively(self) -> None:
		self.assertTrue(context_service.is_price_query("What is the PRICE OF NOSANA today?"))
		self.assertTrue(context_service.is_price_query("nosana price pls"))

	def test_unrelated_text_does_not_match(self) -> None:
		self.assertFalse(context_service.is_price_query("How do I price a GPU job on Nosana?"))
		self.assertFalse(context_service.is_price_query(""))


class ResolveContextTests(IsolatedAsyncioTestCase):
	async def test_price_question_fetches_price(self) -> None:
		calls: list = []
		client = _price_client(lambda request: httpx.Response(200, json={"data": {"value": 1.2345}}), calls)
		async with client:
			fact = await context_service.resolve_context(
				"what is the price of nosana",
				None,
				api_key="birdeye-key",
				client=client,
			)
		self.assertEqual(fact, PriceFact(1.2345))
		self.assertEqual(len(calls), 1)
		request = calls[0]
		self.assertEqual(request.method, "GET")
		self.assertEqual(request.headers["X-API-KEY"], "birdeye-key")
		self.assertEqual(request.url.params["address"], constants.NOS_TOKEN_ADDRESS)
		rendered = budget_service.render_context("what is the price of nosana", fact)
		self.assertIn("The price of Nosana is: 1.2345$", rendered)

	async def test_price_takes_precedence_over_search_results(self) -> None:
		calls: list = []
		client = _price_client(lambda request: httpx.Response(200, json={"data": {"value": 0.42}}), calls)
		async with client:
			fact = await context_service.resolve_context(
				"nosana price",
				["Nosana docs page"],
				api_key="k",
				client=client,
			)
		self.assertIsInstance(fact, PriceFact)

	async def test_failed_price_fetch_degrades_to_no_context(self) -> None:
		calls: list = []
		client = _price_client(lambda request: httpx.Response(503, text="unavailable"), calls)
		async with client:
			with self.assertLogs("app.relay.services.context_service", level="WARNING") as logs:
				fact = await context_service.resolve_context(
					"price of nosana?",
					["should not be used"],
					api_key="k",
					client=client,
				)
		self.assertIsNone(fact)
		self.assertTrue(any("context_fetch_failed" in str(record.__dict__.get("context")) for record in logs.records))

	async def test_search_results_are_packaged_in_order(self) -> None:
		calls: list = []
		client = _price_client(lambda request: httpx.Response(500), calls)
		async with client:
			fact = await context_service.resolve_context(
				"how do I deploy a job?",
				["first doc", "second doc"],
				api_key="k",
				client=client,
			)
		self.assertEqual(fact, SearchResultsFact(("first doc", "second doc")))
		self.assertEqual(calls, [])

	async def test_no_search_results_and_no_price_intent_is_none(self) -> None:
		fact = await context_service.resolve_context("hello there", None, api_key="k")
		self.assertIsNone(fact)


class FetchPriceTests(IsolatedAsyncioTestCase):
	async def _fetch(self, handler) -> float | None:
		async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
			return await context_service.fetch_price(api_key="k", client=client, timeout_s=1.0)

	async def test_integer_value_is_accepted(self) -> None:
		price = await self._fetch(lambda request: httpx.Response(200, json={"data": {"value": 2}}))
		self.assertEqual(price, 2.0)

	async def test_invalid_json_returns_none(self) -> None:
		price = await self._fetch(lambda request: httpx.Response(200, text="<html>oops</html>"))
		self.assertIsNone(price)

	async def test_shape_mismatch_returns_none(self) -> None:
		for body in ({"data": {}}, {"data": {"value": "1.2"}}, {"data": {"value": True}}, {"value": 1.0}, [1, 2]):
			with self.subTest(body=body):
				price = await self._fetch(lambda request, body=body: httpx.Response(200, json=body))
				self.assertIsNone(price)

	async def test_zero_price_is_treated_as_missing(self) -> None:
		price = await self._fetch(lambda request: httpx.Response(200, json={"data": {"value": 0}}))
		self.assertIsNone(price)

	async def test_price_too_large_for_a_float_degrades_to_no_context(self) -> None:
		body = '{"data": {"value": 1' + "0" * 400 + "}}"
		async with httpx.AsyncClient(
			transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body.encode("utf-8"))),
		) as client:
			with self.assertLogs("app.relay.services.context_service", level="WARNING") as logs:
				fact = await context_service.resolve_context("nosana price", None, api_key="k", client=client)
		self.assertIsNone(fact)
		self.assertTrue(any(record.__dict__.get("context", {}).get("reason") == "shape_mismatch" for record in logs.records))

	async def test_timeout_returns_none(self) -> None:
		def handler(request: httpx.Request) -> httpx.Response:
			raise httpx.ReadTimeout("slow", request=request)

		price = await self._fetch(handler)
		self.assertIsNone(price)

	async def test_connection_error_returns_none(self) -> None:
		def handler(request: httpx.Request) -> httpx.Response:
			raise httpx.ConnectError("refused", request=request)

		price = await self._fetch(handler)
		self.assertIsNone(price)
