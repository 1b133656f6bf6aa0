"""
app/flow/dispatcher.py

Purpose: Central message dispatcher

- Receives raw webhook payloads
- Normalizes each message and hands it to the conversation engine
- Converts every failure into a logged, successful acknowledgement
"""

from typing import Dict, Any

from app.core.exceptions import ValidationGap
from app.core.logging import get_logger
from app.flow.engine import ConversationEngine
from app.schemas.webhook import UnifiedMessage, extract_messages, parse_meta_message

logger = get_logger(__name__)


async def dispatch_payload(payload: Dict[str, Any], engine: ConversationEngine) -> Dict[str, Any]:
    """
    Dispatches every message contained in a Meta webhook payload.

    Args:
        payload: Decoded webhook JSON
        engine: Conversation engine

    Returns:
        {"status": "ignored" | "processed", "processed": <count>}
    """
    raw_messages = extract_messages(payload)
    if not raw_messages:
        logger.debug("Webhook event without messages (status update or empty)")
        return {"status": "ignored", "processed": 0}

    processed = 0
    for raw in raw_messages:
        try:
            message = parse_meta_message(raw["message"], raw["contacts"])
        except ValidationGap as e:
            logger.info(f"Skipping message: {e.message}")
            continue

        result = await dispatch_message(message, engine)
        if result["status"] == "success":
            processed += 1

    return {"status": "processed" if processed else "ignored", "processed": processed}


async def dispatch_message(message: UnifiedMessage, engine: ConversationEngine) -> Dict[str, Any]:
    """
    Main dispatcher for one normalized WhatsApp message.

    Returns:
        Response dict; never raises
    """
    logger.info(f"📨 Dispatching message {message.message_id} from {message.name} ({message.phone})")

    try:
        turn = await engine.handle_message(message.phone, message.text)
        logger.info(f"✅ Turn handled: {turn.action.value} (step {turn.step})")
        return {"status": "success", "action": turn.action.value, "step": turn.step}

    except Exception as e:
        logger.error(f"❌ Dispatcher error: {e}", exc_info=True)
        return {"status": "error", "error": str(e)}
