from __future__ import annotations

from unittest import TestCase

from app.relay.errors import ErrorKind, RelayError, classify


class ErrorClassifierTests(TestCase):
	def test_upstream_kinds_surface_as_bad_gateway_with_reason(self) -> None:
		for kind in (
			ErrorKind.UPSTREAM_AUTH,
			ErrorKind.UPSTREAM_RATE_LIMIT,
			ErrorKind.UPSTREAM_TRANSPORT,
			ErrorKind.UPSTREAM_PROTOCOL,
		):
			with self.subTest(kind=kind):
				outcome = classify(RelayError(kind, "internal detail", upstream_message="from provider"))
				self.assertEqual(outcome.status_code, 502)
				self.assertEqual(outcome.code, kind.value)
				self.assertEqual(outcome.message, "from provider")

	def test_upstream_without_message_gets_generic_text(self) -> None:
		outcome = classify(RelayError(ErrorKind.UPSTREAM_RATE_LIMIT, "HTTP 429"))
		self.assertEqual(outcome.code, "upstream_rate_limit")
		self.assertNotIn("429", outcome.message)
		self.assertTrue(outcome.message)

	def test_internal_errors_hide_details(self) -> None:
		outcome = classify(RelayError(ErrorKind.INTERNAL, "System prompt (900 tokens) exceeds limit"))
		self.assertEqual(outcome.status_code, 500)
		self.assertEqual(outcome.code, "internal_error")
		self.assertNotIn("900", outcome.message)

	def test_unexpected_exceptions_are_internal(self) -> None:
		outcome = classify(ValueError("boom"))
		self.assertEqual(outcome.status_code, 500)
		self.assertEqual(outcome.code, "internal_error")

	def test_context_fetch_failure_never_maps_to_upstream_status(self) -> None:
		outcome = classify(RelayError(ErrorKind.CONTEXT_FETCH_FAILED, "price missing"))
		self.assertEqual(outcome.status_code, 500)
		self.assertFalse(RelayError(ErrorKind.CONTEXT_FETCH_FAILED, "x").is_upstream)
