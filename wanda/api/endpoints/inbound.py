import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from wanda.api.deps import get_wanda_assistant
from wanda.api.schemas import ErrorResponse, SquadResponse
from wanda.assistant import InboundCallError, WandaAssistant

router = APIRouter()
logger = logging.getLogger(__name__)


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


async def read_inbound_call(request: Request) -> Tuple[Optional[str], Optional[str]]:
    """
    Pulls the call id and caller number out of either a Vapi assistant
    request (JSON) or a Twilio voice webhook (form post).
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        message = _as_dict(body.get("message")) if isinstance(body, dict) else {}
        call = _as_dict(message.get("call"))
        customer = _as_dict(message.get("customer")) or _as_dict(call.get("customer"))
        return call.get("id"), customer.get("number")

    form = await request.form()
    return form.get("CallSid"), form.get("From")


@router.post(
    "/inbound-call",
    response_model=SquadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def handle_inbound_call(
    request: Request,
    wanda: WandaAssistant = Depends(get_wanda_assistant),
):
    """Answers a new inbound call with the Wanda squad (or bridging TwiML)."""
    try:
        call_id, caller_number = await read_inbound_call(request)
    except ValueError as e:
        logger.error(f"Unreadable inbound call payload: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    try:
        setup = await run_in_threadpool(
            wanda.start_inbound_call, call_id, caller_number, request.headers.get("host")
        )
    except InboundCallError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except Exception as e:
        logger.error(f"Error setting up inbound call {call_id}: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to set up call"})

    if setup.twiml is not None:
        return Response(content=setup.twiml, media_type="text/xml")
    return {"squad": setup.squad}
