import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from wanda.api.deps import get_event_router
from wanda.api.schemas import ErrorResponse
from wanda.event_router import EventRouter

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/events", responses={400: {"model": ErrorResponse}})
async def handle_vapi_event(
    request: Request,
    events: EventRouter = Depends(get_event_router),
):
    """Handles all server messages Vapi sends during a call."""
    try:
        body = await request.json()
    except ValueError:
        logger.error("Received a Vapi event that is not valid JSON")
        return JSONResponse(status_code=400, content={"error": "Invalid JSON"})

    message = body.get("message") if isinstance(body, dict) else None
    call = message.get("call") if isinstance(message, dict) else None
    if not isinstance(call, dict) or not call.get("id"):
        logger.error(f"Invalid Vapi message format: {body}")
        return JSONResponse(status_code=400, content={"error": "Invalid message format"})

    try:
        return await run_in_threadpool(events.handle, message)
    except Exception as e:
        logger.error(
            f"Error processing Vapi {message.get('type')} event for call {message['call']['id']}: {e}",
            exc_info=True,
        )
        return {"result": "Event processing failed"}
