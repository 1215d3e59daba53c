from __future__ import annotations

import logging
from functools import lru_cache

import tiktoken

from app.relay.errors import ErrorKind, RelayError
from app.relay.services import model_service


logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _encoding(name: str) -> tiktoken.Encoding:
	return tiktoken.get_encoding(name)


def encoding_for(model_id: str) -> tiktoken.Encoding:
	encoding_name = model_service.get_model(model_id).encoding
	try:
		return _encoding(encoding_name)
	except Exception as exc:
		logger.error(
			"tokenizer load failed",
			extra={"context": {"model": model_id, "encoding": encoding_name, "error": exc.__class__.__name__}},
		)
		raise RelayError(
			ErrorKind.INTERNAL,
			f"Tokenizer '{encoding_name}' for model '{model_id}' could not be loaded.",
		) from exc


def count_tokens(text: str, model_id: str) -> int:
	"""Number of tokens ``text`` occupies for ``model_id``.

	Unknown model ids raise ``RelayError(INTERNAL)``; empty text is 0 tokens.
	"""
	model_service.get_model(model_id)
	if not text:
		return 0
	return len(encoding_for(model_id).encode(text, disallowed_special=()))

