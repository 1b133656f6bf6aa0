"""
app/schemas/webhook.py

Purpose: WhatsApp Cloud API webhook payload parsing

- Normalizes Meta webhook events into UnifiedMessage
- Skips statuses, non-text and malformed messages
- Ensures predictable request handling
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import Any, Dict, List, Optional

from app.core.exceptions import ValidationGap


class UnifiedMessage(BaseModel):
    """
    Normalized message format for internal processing
    """
    phone: str = Field(..., description="Sender as given in the webhook `from` field")
    name: str = Field(..., description="User's display name")
    text: str = Field(..., description="Message text content")
    message_id: str = Field(..., description="Unique message identifier")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "phone": "5215512345678",
                "name": "Juan Pérez",
                "text": "Quiero una factura",
                "message_id": "wamid.abc123",
            }
        }
    )


def parse_meta_message(message: Any, contacts: Optional[List[Dict[str, Any]]] = None) -> UnifiedMessage:
    """
    Parses one entry of `value.messages[]`.

    Meta format (JSON):
    {
        "from": "5215512345678",
        "id": "wamid.abc123",
        "timestamp": "1700000000",
        "type": "text",
        "text": {"body": "Quiero una factura"}
    }

    Raises:
        ValidationGap: If the message has no sender, no text body, or a malformed shape
    """
    if not isinstance(message, dict):
        raise ValidationGap("Message entry is not an object")

    phone = message.get("from")
    if not phone:
        raise ValidationGap("Message has no sender", details={"id": message.get("id")})

    if message.get("type", "text") != "text":
        raise ValidationGap(
            f"Unsupported message type: {message.get('type')}",
            details={"id": message.get("id")}
        )

    text = message.get("text")
    body = text.get("body") if isinstance(text, dict) else None
    if not isinstance(body, str):
        raise ValidationGap("Text message has no usable body", details={"id": message.get("id")})

    name = phone
    for contact in contacts or []:
        if isinstance(contact, dict) and contact.get("wa_id") in (None, phone):
            profile = contact.get("profile")
            name = (profile.get("name") if isinstance(profile, dict) else None) or phone
            break

    try:
        return UnifiedMessage(
            phone=phone,
            name=name,
            text=body,
            message_id=message.get("id") or "unknown",
        )
    except ValidationError as e:
        raise ValidationGap("Message fields have unexpected types", details={"errors": e.error_count()})


def _objects(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def extract_messages(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Flattens `entry[].changes[].value.messages[]`, attaching the
    contacts list of the same change to each message. Entries and
    changes that are not objects are skipped.
    """
    messages = []
    for entry in _objects(payload.get("entry")):
        for change in _objects(entry.get("changes")):
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            contacts = _objects(value.get("contacts"))
            raw_messages = value.get("messages")
            for message in raw_messages if isinstance(raw_messages, list) else []:
                messages.append({"message": message, "contacts": contacts})
    return messages
