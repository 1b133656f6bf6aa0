import asyncio

import pytest

from app.core.config import Settings
from app.core.exceptions import SubmissionInputError, UpstreamError
from app.services.submission_service import SubmissionOrchestrator
from conftest import FakeBilling, FakeNotifier, FakeClock

USER = "5215512345678"


@pytest.fixture
def fields(answers):
    keys = ["rfc", "cp", "regimen", "nombre", "uso", "metodo", "forma", "descripcion", "importe"]
    return dict(zip(keys, answers))


@pytest.fixture
def orchestrator(config, billing, notifier, clock):
    return SubmissionOrchestrator(billing=billing, notifier=notifier, config=config, clock=clock)


def test_customer_request_uses_fiscal_answers(orchestrator, fields):
    request = orchestrator.build_customer_request(fields)

    assert request.model_dump() == {
        "legal_name": "Juan Pérez",
        "tax_id": "XAXX010101000",
        "tax_system": "612",
        "address": {"zip": "64000", "country": "MEX"},
    }


def test_invoice_request_has_fixed_catalogue_values(orchestrator, fields, clock):
    request = orchestrator.build_invoice_request(fields, "cus_42", USER, 1008.62)
    body = request.model_dump(exclude_none=True)

    assert body["customer"] == "cus_42"
    assert body["items"] == [{
        "quantity": 1,
        "product": {
            "description": "Consultoría",
            "product_key": "80141600",
            "unit_key": "E48",
            "price": 1008.62,
            "tax_included": False,
            "taxability": "01",
            "taxes": [{"type": "IVA", "rate": 0.16}],
        },
    }]
    assert body["payment_form"] == "03"
    assert body["payment_method"] == "PUE"
    assert body["use"] == "G03"
    assert body["type"] == "I"
    assert body["external_id"] == f"WA-{USER}-{int(clock.now.timestamp() * 1000)}"
    assert body["issuer"] == {
        "tax_id": "EKU9003173C9",
        "tax_system": "601",
        "address": {"zip": "64000", "country": "MEX"},
    }


def test_issuer_is_omitted_when_not_configured(billing, notifier, fields):
    orchestrator = SubmissionOrchestrator(billing=billing, notifier=notifier, config=Settings(_env_file=None))

    body = orchestrator.build_invoice_request(fields, "cus_42", USER, 10.0).model_dump(exclude_none=True)

    assert "issuer" not in body


@pytest.mark.parametrize("raw, expected", [
    ("1008.62", 1008.62),
    ("$1,008.62", 1008.62),
    ("1008.62 MXN", 1008.62),
    ("500", 500.0),
])
def test_check_fields_parses_amount(orchestrator, fields, raw, expected):
    fields["importe"] = raw

    assert orchestrator.check_fields(fields) == expected


def test_check_fields_rejects_non_numeric_amount(orchestrator, fields):
    fields["importe"] = "mil pesos"

    with pytest.raises(SubmissionInputError) as exc_info:
        orchestrator.check_fields(fields)

    assert exc_info.value.details == {"importe": "mil pesos"}


def test_check_fields_reports_missing_answers(orchestrator, fields):
    del fields["rfc"]
    fields["uso"] = ""

    with pytest.raises(SubmissionInputError) as exc_info:
        orchestrator.check_fields(fields)

    assert exc_info.value.details == {"missing": ["rfc", "uso"]}


def test_submit_success_sends_one_confirmation(orchestrator, fields, billing, notifier):
    result = asyncio.run(orchestrator.submit(USER, fields))

    assert result.success is True
    assert result.customer_id == "cus_0001"
    assert result.invoice.uuid == "5B1F2C3D-0000-4000-8000-ABCDEF012345"
    assert result.notified is True
    assert billing.calls == ["customer", "invoice"]
    assert len(notifier.sent) == 1
    assert notifier.sent[0][1].startswith("✅ Factura emitida.")


def test_invalid_amount_fails_before_any_billing_call(orchestrator, fields, billing, notifier):
    fields["importe"] = "abc"

    result = asyncio.run(orchestrator.submit(USER, fields))

    assert result.success is False
    assert result.failed_stage == "input"
    assert billing.calls == []
    assert len(notifier.sent) == 1
    assert "abc" in notifier.sent[0][1]


def test_invoice_failure_keeps_customer_id_and_notifies(config, fields, clock):
    billing = FakeBilling(invoice_error=UpstreamError("bad", upstream_status=422, body="{}"))
    notifier = FakeNotifier()
    orchestrator = SubmissionOrchestrator(billing=billing, notifier=notifier, config=config, clock=clock)

    result = asyncio.run(orchestrator.submit(USER, fields))

    assert result.success is False
    assert result.failed_stage == "invoice"
    assert result.customer_id == "cus_0001"
    assert billing.calls == ["customer", "invoice"]
    assert "rechazó" in notifier.sent[0][1]
    assert "*factura*" in notifier.sent[0][1]


def test_unreachable_billing_reports_unavailable(config, fields):
    billing = FakeBilling(customer_error=UpstreamError("timeout"))
    notifier = FakeNotifier()
    orchestrator = SubmissionOrchestrator(billing=billing, notifier=notifier, config=config, clock=FakeClock())

    result = asyncio.run(orchestrator.submit(USER, fields))

    assert result.failed_stage == "customer"
    assert "no respondió" in notifier.sent[0][1]


def test_lost_confirmation_is_not_an_error(config, fields, billing):
    orchestrator = SubmissionOrchestrator(
        billing=billing, notifier=FakeNotifier(fail=True), config=config, clock=FakeClock()
    )

    result = asyncio.run(orchestrator.submit(USER, fields))

    assert result.success is True
    assert result.notified is False
