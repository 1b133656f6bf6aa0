"""
app/services/whatsapp_service.py

Purpose: WhatsApp Cloud API message sending

- Sends plain text messages through the Graph API
- Raises TransportError on any delivery failure
"""

import httpx
from typing import Any, Dict, Optional

from app.core.config import Settings
from app.core.exceptions import TransportError
from app.core.logging import get_logger

logger = get_logger(__name__)


class WhatsAppService:
    """Service for sending WhatsApp messages via the Meta Cloud API"""

    def __init__(self, config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.token = config.META_TOKEN or ""
        self.phone_number_id = config.PHONE_NUMBER_ID or ""
        self.base_url = (
            f"{config.WHATSAPP_API_BASE.rstrip('/')}/{config.WHATSAPP_API_VERSION}/{self.phone_number_id}"
        )
        self._timeout = config.UPSTREAM_TIMEOUT_SECONDS
        self._transport = transport

    async def send_text(self, to_phone: str, message: str) -> Dict[str, Any]:
        """
        Sends a WhatsApp text message.

        Args:
            to_phone: Recipient as delivered in the webhook `from` field
            message: Message text

        Returns:
            {"success": True, "message_id": "wamid..."}

        Raises:
            TransportError: If the Graph API rejects the message or is unreachable
        """
        url = f"{self.base_url}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "to": to_phone,
            "type": "text",
            "text": {"body": message},
        }
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

        logger.info(f"📤 Sending WhatsApp message to {to_phone}")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error("WhatsApp API timeout")
            raise TransportError("WhatsApp API timeout", details={"to": to_phone})
        except httpx.RequestError as e:
            logger.error(f"Network error sending WhatsApp message: {e}")
            raise TransportError(f"WhatsApp API unreachable: {e}", details={"to": to_phone})

        if not response.is_success:
            logger.error(f"❌ WhatsApp API error: {response.status_code} - {response.text}")
            raise TransportError(
                f"WhatsApp API error: {response.status_code}",
                details={"to": to_phone, "status_code": response.status_code, "body": response.text},
            )

        try:
            result = response.json()
        except ValueError:
            result = {}
        messages = result.get("messages") or [{}]
        message_id = messages[0].get("id")
        logger.info(f"✅ Message sent: id={message_id}")

        return {"success": True, "message_id": message_id}

    def is_configured(self) -> bool:
        """Check if the Cloud API credentials are present"""
        return bool(self.token and self.phone_number_id)


async def notify_user(notifier, to_phone: str, message: str) -> bool:
    """
    Sends a message and swallows TransportError.

    A lost message must not re-trigger the flow or fail the webhook, so
    delivery problems are only logged.

    Returns:
        True if the message was accepted by the provider
    """
    try:
        await notifier.send_text(to_phone, message)
        return True
    except TransportError as e:
        logger.warning(f"Could not deliver message to {to_phone}: {e.message}")
        return False
