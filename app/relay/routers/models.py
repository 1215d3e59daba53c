from __future__ import annotations

from fastapi import APIRouter, Request

from app.relay.response import success_response
from app.relay.schemas import ApiEnvelope
from app.relay.services import model_service


router = APIRouter(prefix="/api", tags=["models"])


@router.get("/models", response_model=ApiEnvelope)
def models(request: Request):
	return success_response(request=request, data=model_service.list_models())
