import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import Settings
from app.core.exceptions import TransportError
from app.flow.engine import ConversationEngine
from app.schemas.facturapi import InvoiceResult
from app.services.session_service import InMemorySessionStore
from app.services.submission_service import SubmissionOrchestrator

USER = "5215512345678"

ANSWERS = [
    "XAXX010101000",   # rfc
    "64000",           # cp
    "612",             # regimen
    "Juan Pérez",      # nombre
    "G03",             # uso
    "PUE",             # metodo
    "03",              # forma
    "Consultoría",     # descripcion
    "1008.62",         # importe
]


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.active = 0
        self.max_active = 0

    async def send_text(self, to_phone, message):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            if self.fail:
                raise TransportError("provider down")
            self.sent.append((to_phone, message))
            return {"success": True, "message_id": f"wamid.{len(self.sent)}"}
        finally:
            self.active -= 1

    def messages_to(self, to_phone):
        return [message for to, message in self.sent if to == to_phone]


class FakeBilling:
    def __init__(self, customer_error=None, invoice_error=None):
        self.customer_error = customer_error
        self.invoice_error = invoice_error
        self.customer_requests = []
        self.invoice_requests = []
        self.calls = []

    async def create_customer(self, request):
        self.calls.append("customer")
        self.customer_requests.append(request)
        if self.customer_error:
            raise self.customer_error
        return "cus_0001"

    async def create_invoice(self, request):
        self.calls.append("invoice")
        self.invoice_requests.append(request)
        if self.invoice_error:
            raise self.invoice_error
        return InvoiceResult(
            id="inv_0001",
            uuid="5B1F2C3D-0000-4000-8000-ABCDEF012345",
            verification_url="https://verificacfdi.facturaelectronica.sat.gob.mx/?id=5B1F2C3D",
        )


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def config():
    return Settings(
        _env_file=None,
        EMISOR_RFC="EKU9003173C9",
        EMISOR_REGIMEN="601",
        LUGAR_EXP="64000",
        FACTURAPI_KEY="sk_test_123",
        META_TOKEN="meta_test_token",
        PHONE_NUMBER_ID="1234567890",
        VERIFY_TOKEN="verify-me",
    )


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def billing():
    return FakeBilling()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(config, store, notifier, billing, clock):
    def factory(**overrides):
        used_notifier = overrides.pop("notifier", notifier)
        used_billing = overrides.pop("billing", billing)
        orchestrator = SubmissionOrchestrator(
            billing=used_billing,
            notifier=used_notifier,
            config=config,
            clock=clock,
        )
        options = {
            "start_keyword": config.START_KEYWORD,
            "session_timeout_minutes": config.SESSION_TIMEOUT_MINUTES,
            "clock": clock,
        }
        options.update(overrides)
        return ConversationEngine(
            store=store,
            notifier=used_notifier,
            orchestrator=orchestrator,
            **options,
        )
    return factory


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def user_id():
    return USER


@pytest.fixture
def answers():
    return list(ANSWERS)
