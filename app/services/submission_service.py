"""
app/services/submission_service.py

Purpose: Turns a finished conversation into an issued invoice

- Stage 1: create the customer (receptor) from the fiscal answers
- Stage 2: issue the invoice for that customer
- Sends exactly one result message to the user
- Never retries; a failure asks the user to start over
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from app.core.config import Settings
from app.core.exceptions import SubmissionInputError, UpstreamError
from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState
from app.flow.steps import StepScript, INVOICE_STEPS
from app.schemas.facturapi import (
    Address, CustomerRequest, InvoiceItem, InvoiceRequest, InvoiceResult, Issuer, Product,
)
from app.services.whatsapp_service import notify_user
from utils.constants import (
    FIELD_RFC, FIELD_CP, FIELD_REGIMEN, FIELD_NOMBRE, FIELD_USO,
    FIELD_METODO, FIELD_FORMA, FIELD_DESCRIPCION, FIELD_IMPORTE,
    COUNTRY_CODE, EXTERNAL_ID_PREFIX,
    INVOICE_ISSUED_MESSAGE, INVOICE_FAILED_MESSAGE,
    REASON_BILLING_REJECTED, REASON_BILLING_UNAVAILABLE,
    REASON_MISSING_FIELDS, REASON_INVALID_AMOUNT,
)
from utils.time_utils import epoch_millis, utc_now
from utils.validation_utils import parse_amount

logger = get_logger(__name__)

STAGE_INPUT = "input"
STAGE_CUSTOMER = "customer"
STAGE_INVOICE = "invoice"


@dataclass
class SubmissionResult:
    """
    Outcome of one submission. `failed_stage` is set only on failure.
    """
    success: bool
    message: str
    customer_id: Optional[str] = None
    invoice: Optional[InvoiceResult] = None
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    notified: bool = False


class SubmissionOrchestrator:
    """
    Runs the two dependent billing calls for a completed field set.

    `billing` needs `create_customer(CustomerRequest) -> str` and
    `create_invoice(InvoiceRequest) -> InvoiceResult`; `notifier` needs
    `send_text(to, body)`.
    """

    def __init__(
        self,
        billing,
        notifier,
        config: Settings,
        script: StepScript = INVOICE_STEPS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.billing = billing
        self.notifier = notifier
        self.config = config
        self.script = script
        self.clock = clock

    def check_fields(self, fields: Dict[str, str]) -> float:
        """
        Verifies every answer is present and parses the amount.

        Returns:
            The parsed amount

        Raises:
            SubmissionInputError: If an answer is missing or the amount is not a number
        """
        missing = [key for key in self.script.keys() if not fields.get(key)]
        if missing:
            raise SubmissionInputError(
                REASON_MISSING_FIELDS.format(fields=", ".join(missing)),
                details={"missing": missing},
            )

        raw_amount = fields[FIELD_IMPORTE]
        try:
            return parse_amount(raw_amount)
        except ValueError:
            raise SubmissionInputError(
                REASON_INVALID_AMOUNT.format(value=raw_amount),
                details={"importe": raw_amount},
            )

    def build_customer_request(self, fields: Dict[str, str]) -> CustomerRequest:
        return CustomerRequest(
            legal_name=fields[FIELD_NOMBRE],
            tax_id=fields[FIELD_RFC],
            tax_system=fields[FIELD_REGIMEN],
            address=Address(zip=fields[FIELD_CP], country=COUNTRY_CODE),
        )

    def build_issuer(self) -> Optional[Issuer]:
        """The issuer block is sent only when the issuer identity is configured."""
        config = self.config
        if not (config.EMISOR_RFC and config.EMISOR_REGIMEN and config.LUGAR_EXP):
            return None
        return Issuer(
            tax_id=config.EMISOR_RFC,
            tax_system=config.EMISOR_REGIMEN,
            address=Address(zip=config.LUGAR_EXP, country=COUNTRY_CODE),
        )

    def build_invoice_request(
        self,
        fields: Dict[str, str],
        customer_id: str,
        user_id: str,
        amount: float,
        issued_at: Optional[datetime] = None,
    ) -> InvoiceRequest:
        issued_at = issued_at or self.clock()
        return InvoiceRequest(
            customer=customer_id,
            items=[
                InvoiceItem(
                    product=Product(
                        description=fields[FIELD_DESCRIPCION],
                        price=amount,
                    )
                )
            ],
            payment_form=fields[FIELD_FORMA],
            payment_method=fields[FIELD_METODO].upper(),
            use=fields[FIELD_USO],
            external_id=f"{EXTERNAL_ID_PREFIX}-{user_id}-{epoch_millis(issued_at)}",
            issuer=self.build_issuer(),
        )

    async def submit(self, user_id: str, fields: Dict[str, str]) -> SubmissionResult:
        """
        Creates the customer, then the invoice, then tells the user.

        The invoice call is only made once the customer call has returned
        an ID. Failures at any stage end the submission.
        """
        with LogContext(user_id=user_id, state=ConversationState.COMPLETE.value):
            logger.info("Submitting invoice request")
            result = await self._run(user_id, fields)
            result.notified = await notify_user(self.notifier, user_id, result.message)
            return result

    async def _run(self, user_id: str, fields: Dict[str, str]) -> SubmissionResult:
        try:
            amount = self.check_fields(fields)
        except SubmissionInputError as e:
            logger.warning(f"Answers cannot be submitted: {e.message}")
            return self._failure(STAGE_INPUT, e.message, e.message)

        try:
            customer_id = await self.billing.create_customer(self.build_customer_request(fields))
        except UpstreamError as e:
            logger.error(f"Customer creation failed: {e.message}", extra={"status_code": e.upstream_status})
            return self._failure(STAGE_CUSTOMER, self._reason_for(e), e.message)

        try:
            invoice = await self.billing.create_invoice(
                self.build_invoice_request(fields, customer_id, user_id, amount)
            )
        except UpstreamError as e:
            logger.error(f"Invoice creation failed: {e.message}", extra={"status_code": e.upstream_status})
            result = self._failure(STAGE_INVOICE, self._reason_for(e), e.message)
            result.customer_id = customer_id
            return result

        logger.info(f"✅ Invoice issued: {invoice.uuid}", extra={"document_id": invoice.id})
        return SubmissionResult(
            success=True,
            message=INVOICE_ISSUED_MESSAGE.format(
                uuid=invoice.uuid,
                verification_url=invoice.verification_url,
            ),
            customer_id=customer_id,
            invoice=invoice,
        )

    def _failure(self, stage: str, reason: str, error: str) -> SubmissionResult:
        return SubmissionResult(
            success=False,
            message=INVOICE_FAILED_MESSAGE.format(reason=reason, keyword=self.config.START_KEYWORD),
            failed_stage=stage,
            error=error,
        )

    @staticmethod
    def _reason_for(error: UpstreamError) -> str:
        if error.upstream_status is None:
            return REASON_BILLING_UNAVAILABLE
        return REASON_BILLING_REJECTED
