from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from app.relay import config
from app.relay.errors import RelayError, classify
from app.relay.schemas import ChatRequest
from app.relay.services import chat_service, relay_service


router = APIRouter(prefix="/api", tags=["chat"])


def _http_error(exc: RelayError) -> HTTPException:
	outcome = classify(exc)
	return HTTPException(
		status_code=outcome.status_code,
		detail={"code": outcome.code, "message": outcome.message},
	)


@router.post("/chat")
async def chat(request: Request, payload: ChatRequest):
	try:
		deadline_s = config.stream_deadline_s()
		handle = await chat_service.start_chat(
			payload,
			client=getattr(request.app.state, "http_client", None),
		)
	except RelayError as exc:
		raise _http_error(exc) from exc

	return StreamingResponse(
		relay_service.relay(
			handle,
			is_disconnected=request.is_disconnected,
			deadline_s=deadline_s,
		),
		media_type="text/plain; charset=utf-8",
		headers={
			"Cache-Control": "no-cache",
			"X-Accel-Buffering": "no",
		},
	)
