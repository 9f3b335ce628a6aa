from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from contestbot.api.normalize import extract_inbound_message
from contestbot.api.schemas import WebhookAck
from contestbot.core.engine import ConversationEngine
from contestbot.deps import get_conversation_engine
from contestbot.observability.logging import log
from contestbot.settings import settings

router = APIRouter()


@router.get("/webhook")
def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """Subscription handshake: echo the challenge when the shared token matches."""
    if not mode or not token or not challenge:
        log(event="webhook_verify_missing_params")
        return JSONResponse(status_code=400, content={"error": "Missing required parameters"})

    if mode == "subscribe" and token == settings.VERIFY_TOKEN:
        log(event="webhook_verified")
        return PlainTextResponse(challenge, status_code=200)

    log(event="webhook_verify_failed", mode=mode)
    return JSONResponse(status_code=403, content={"error": "Webhook verification failed"})


@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    engine: ConversationEngine = Depends(get_conversation_engine),
):
    # Always acknowledge: a non-2xx makes the provider redeliver.
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    msg = extract_inbound_message(payload)
    if msg is None:
        # Delivery receipts and other non-message callbacks land here.
        log(event="webhook_no_message")
        return WebhookAck()

    log(event="webhook_message", address=msg.sender, messageId=msg.id or "", text=msg.text)
    result = await run_in_threadpool(engine.handle_message, msg.sender, msg.text)
    return WebhookAck(status=result.outcome)
