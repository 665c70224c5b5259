from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.deps import get_processor
from collector.pipeline import EventProcessor

router = APIRouter()


@router.post("/events")
async def submit_events(request: Request, processor: EventProcessor = Depends(get_processor)) -> JSONResponse:
    """Accept a signed batch of client events.

    The signature covers the raw body, so it is read as bytes and parsed only
    after verification. The reply is always ``{"status", "info"}``.
    """

    body = await request.body()
    outcome = await processor.process(request.headers, body)
    return JSONResponse(status_code=outcome.status_code, content=outcome.response())
