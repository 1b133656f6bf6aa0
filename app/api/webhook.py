"""
app/api/webhook.py

Purpose: WhatsApp Cloud API webhook endpoint

- Answers Meta's subscription challenge
- Receives message events and passes them to the flow dispatcher
- Always acknowledges POSTs with 200 so Meta does not redeliver
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.flow.dispatcher import dispatch_payload
from app.flow.engine import ConversationEngine
from app.schemas.response import WebhookAck

logger = get_logger(__name__)
router = APIRouter()


def get_engine(request: Request) -> ConversationEngine:
    """Engine built during application startup."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Conversation engine is not ready")
    return engine


@router.get("/webhook", response_class=PlainTextResponse)
async def webhook_verification(
    hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """
    Meta subscription handshake: echo the challenge when the token matches.
    """
    if hub_mode == "subscribe" and settings.VERIFY_TOKEN and hub_verify_token == settings.VERIFY_TOKEN:
        logger.info("✅ Webhook verified")
        return PlainTextResponse(hub_challenge or "")

    logger.warning(f"Webhook verification rejected (mode={hub_mode})")
    raise HTTPException(status_code=403, detail="Webhook verification failed")


@router.post("/webhook", response_model=WebhookAck)
async def webhook_handler(request: Request, engine: ConversationEngine = Depends(get_engine)):
    """
    Receives WhatsApp message events.
    """
    try:
        payload = await request.json()
    except ValueError as e:
        logger.warning(f"Webhook body is not JSON: {e}")
        return WebhookAck(status="ignored")

    if not isinstance(payload, dict):
        logger.warning("Webhook body is not a JSON object")
        return WebhookAck(status="ignored")

    try:
        result = await dispatch_payload(payload, engine)
        return WebhookAck(**result)
    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)
        return WebhookAck(status="error")
