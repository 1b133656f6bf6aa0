"""
app/services/facturapi_service.py

Purpose: Facturapi integration

- Creates the receiving customer
- Issues the CFDI invoice
- Maps non-success responses, timeouts and network errors to UpstreamError
"""

import httpx
from pydantic import ValidationError
from typing import Any, Dict, Optional, Tuple

from app.core.config import Settings
from app.core.exceptions import UpstreamError
from app.core.logging import get_logger
from app.schemas.facturapi import CustomerRequest, CustomerResult, InvoiceRequest, InvoiceResult

logger = get_logger(__name__)


class FacturapiService:
    """
    Thin async client for the two Facturapi calls the invoice flow makes.
    """

    def __init__(self, config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = config.FACTURAPI_BASE_URL.rstrip("/")
        self.api_key = config.FACTURAPI_KEY or ""
        self._timeout = config.UPSTREAM_TIMEOUT_SECONDS
        self._transport = transport

    async def create_customer(self, request: CustomerRequest) -> str:
        """
        Creates a customer and returns its Facturapi ID.

        Raises:
            UpstreamError: If Facturapi does not answer 2xx
        """
        status, data = await self._post("/customers", request.model_dump(exclude_none=True))
        customer = self._parse(CustomerResult, data, "/customers", status)
        logger.info(f"Customer created: {customer.id}")
        return customer.id

    async def create_invoice(self, request: InvoiceRequest) -> InvoiceResult:
        """
        Issues an invoice for a previously created customer.

        Raises:
            UpstreamError: If Facturapi does not answer 2xx
        """
        status, data = await self._post("/invoices", request.model_dump(exclude_none=True))
        invoice = self._parse(InvoiceResult, data, "/invoices", status)
        logger.info(
            f"Invoice issued: {invoice.uuid}",
            extra={"document_id": invoice.id}
        )
        return invoice

    async def _post(self, path: str, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"Facturapi timeout on {path}")
            raise UpstreamError(f"Facturapi timed out on {path}")
        except httpx.RequestError as e:
            logger.error(f"Network error calling Facturapi {path}: {e}")
            raise UpstreamError(f"Unable to reach Facturapi: {e}")

        if not response.is_success:
            logger.error(
                f"Facturapi {path} failed: {response.status_code} - {response.text}",
                extra={"status_code": response.status_code}
            )
            raise UpstreamError(
                f"Facturapi {path} returned {response.status_code}",
                upstream_status=response.status_code,
                body=response.text,
            )

        try:
            return response.status_code, response.json()
        except ValueError:
            raise UpstreamError(
                f"Facturapi {path} returned a non-JSON body",
                upstream_status=response.status_code,
                body=response.text,
            )

    @staticmethod
    def _parse(model, data: Dict[str, Any], path: str, status: int):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Unexpected Facturapi {path} response: {data}")
            raise UpstreamError(
                f"Facturapi {path} response is missing fields: {e}",
                upstream_status=status,
                body=str(data),
            )
