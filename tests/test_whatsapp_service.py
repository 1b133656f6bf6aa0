import asyncio
import json

import httpx
import pytest

from app.core.exceptions import TransportError
from app.services.whatsapp_service import WhatsAppService, notify_user


def test_send_text_posts_cloud_api_payload(config):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"messages": [{"id": "wamid.XYZ"}]})

    service = WhatsAppService(config, transport=httpx.MockTransport(handler))
    result = asyncio.run(service.send_text("5215512345678", "Hola"))

    assert result == {"success": True, "message_id": "wamid.XYZ"}
    assert seen["url"] == "https://graph.facebook.com/v20.0/1234567890/messages"
    assert seen["auth"] == "Bearer meta_test_token"
    assert seen["body"] == {
        "messaging_product": "whatsapp",
        "to": "5215512345678",
        "type": "text",
        "text": {"body": "Hola"},
    }


def test_send_text_raises_on_provider_error(config):
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Invalid OAuth access token"}})

    service = WhatsAppService(config, transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError) as exc_info:
        asyncio.run(service.send_text("5215512345678", "Hola"))

    assert exc_info.value.details["status_code"] == 401


def test_notify_user_reports_delivery_failure(config):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    service = WhatsAppService(config, transport=httpx.MockTransport(handler))

    assert asyncio.run(notify_user(service, "5215512345678", "Hola")) is False


def test_is_configured(config):
    assert WhatsAppService(config).is_configured() is True
    config.META_TOKEN = None
    assert WhatsAppService(config).is_configured() is False
