from __future__ import annotations

from fastapi import APIRouter, Request

from app.relay import constants
from app.relay.response import success_response
from app.relay.schemas import ApiEnvelope


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=ApiEnvelope)
def health(request: Request):
	return success_response(
		request=request,
		data={"status": "ok", "version": constants.APP_VERSION},
	)
