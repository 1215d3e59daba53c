from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from app.relay import constants
from app.relay.errors import ErrorKind, RelayError
from app.relay.schemas import Message, ModelSpec
from app.relay.services import tokenizer_service
from app.relay.services.context_service import ContextFact, PriceFact, SearchResultsFact


logger = logging.getLogger(__name__)

TokenCounter = Callable[[str], int]


@dataclass(frozen=True)
class Plan:
	system_prompt: str
	messages: Tuple[Message, ...]
	prompt_tokens: int
	total_tokens: int


def render_context(content: str, fact: ContextFact) -> str:
	if isinstance(fact, PriceFact):
		price = f"{fact.value:.4f}"
		directive = (
			f"The current price of Nosana is ${price}. Respond with just the price, "
			f'prefaced by "The price of Nosana is: {price}$".'
		)
		return f"{content}\n\nContext: {directive}"
	if isinstance(fact, SearchResultsFact):
		return f"{content}\n\nContext:\n" + "\n\n".join(fact.documents)
	return content


def _with_context(messages: Sequence[Message], fact: ContextFact) -> List[Message]:
	rendered = list(messages)
	if rendered and fact is not None:
		last = rendered[-1]
		rendered[-1] = last.model_copy(update={"content": render_context(last.content, fact)})
	return rendered


def build_plan(
	model: ModelSpec,
	system_prompt: str,
	fact: ContextFact,
	messages: Sequence[Message],
	*,
	reserved_tokens: int = constants.RESERVED_COMPLETION_TOKENS,
	count_tokens: Optional[TokenCounter] = None,
) -> Plan:
	"""Keep the newest turns that fit beside the system prompt and the reserve."""
	if count_tokens is None:
		count_tokens = lambda text: tokenizer_service.count_tokens(text, model.id)  # noqa: E731

	rendered = _with_context(messages, fact)
	prompt_tokens = count_tokens(system_prompt)
	if prompt_tokens + reserved_tokens > model.token_limit:
		raise RelayError(
			ErrorKind.INTERNAL,
			f"System prompt ({prompt_tokens} tokens) plus {reserved_tokens} reserved tokens "
			f"exceeds the {model.token_limit} token limit of '{model.id}'.",
		)

	total = prompt_tokens
	kept: List[Message] = []
	for message in reversed(rendered):
		tokens = count_tokens(message.content)
		if total + tokens + reserved_tokens > model.token_limit:
			break
		total += tokens
		kept.append(message)
	kept.reverse()

	plan = Plan(
		system_prompt=system_prompt,
		messages=tuple(kept),
		prompt_tokens=prompt_tokens,
		total_tokens=total,
	)
	logger.info(
		"plan built",
		extra={
			"context": {
				"model": model.id,
				"included": len(plan.messages),
				"dropped": len(rendered) - len(plan.messages),
				"total_tokens": total,
			}
		},
	)
	return plan
