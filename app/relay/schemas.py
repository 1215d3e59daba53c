from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["system", "user", "assistant"]


class ApiError(BaseModel):
	model_config = ConfigDict(extra="forbid")

	code: str
	message: str
	evidence: List[str] = Field(default_factory=list)


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Dict[str, Any]] = None
	error: Optional[ApiError] = None


class Message(BaseModel):
	model_config = ConfigDict(extra="ignore", frozen=True)

	role: Role
	content: str = ""


class ModelSpec(BaseModel):
	model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

	id: str = Field(..., min_length=1)
	token_limit: int = Field(..., gt=0, alias="tokenLimit")


class ChatRequest(BaseModel):
	model_config = ConfigDict(extra="ignore", populate_by_name=True)

	url: Optional[str] = Field(default=None, description="Upstream chat completions URL.")
	model: Optional[ModelSpec] = None
	messages: List[Message] = Field(default_factory=list)
	key: Optional[str] = Field(default=None, description="Upstream API key; falls back to OPENAI_API_KEY.")
	prompt: Optional[str] = Field(default=None, description="Accepted for client compatibility; unused.")
	temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
	search_results: Optional[List[str]] = Field(default=None, alias="searchResults")
