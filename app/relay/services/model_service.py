from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from app.relay import config
from app.relay.errors import ErrorKind, RelayError
from app.relay.schemas import ModelSpec


@dataclass(frozen=True)
class SupportedModel:
	id: str
	name: str
	token_limit: int
	max_length: int
	encoding: str


_SUPPORTED_MODELS: Dict[str, SupportedModel] = {
	model.id: model
	for model in (
		SupportedModel("gpt-3.5-turbo", "GPT-3.5", 4000, 12000, "cl100k_base"),
		SupportedModel("gpt-35-az", "GPT-3.5 (Azure)", 4000, 12000, "cl100k_base"),
		SupportedModel("gpt-4", "GPT-4", 8000, 24000, "cl100k_base"),
		SupportedModel("gpt-4-32k", "GPT-4-32K", 32000, 96000, "cl100k_base"),
		SupportedModel("gpt-4o", "GPT-4o", 128000, 384000, "o200k_base"),
		SupportedModel("gpt-4o-mini", "GPT-4o mini", 128000, 384000, "o200k_base"),
	)
}


def get_model(model_id: str) -> SupportedModel:
	model = _SUPPORTED_MODELS.get(model_id)
	if model is None:
		raise RelayError(ErrorKind.INTERNAL, f"No tokenizer registered for model '{model_id}'.")
	return model


def default_model_spec() -> ModelSpec:
	model = get_model(config.default_model_id())
	return ModelSpec(id=model.id, token_limit=model.token_limit)


def list_models() -> Dict[str, object]:
	models: List[Dict[str, object]] = [
		{
			"id": model.id,
			"name": model.name,
			"token_limit": model.token_limit,
			"max_length": model.max_length,
		}
		for model in _SUPPORTED_MODELS.values()
	]
	return {
		"models": models,
		"default_model": config.default_model_id(),
	}
