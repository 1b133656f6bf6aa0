"""
app/schemas/facturapi.py

Pydantic models for Facturapi requests and responses.
Field names follow the Facturapi v2 JSON bodies.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from utils.constants import (
    COUNTRY_CODE, CFDI_TYPE_INCOME, ITEM_QUANTITY, PRODUCT_KEY, UNIT_KEY,
    TAXABILITY, TAX_TYPE_IVA, IVA_RATE,
)


class Address(BaseModel):
    """Fiscal address. Only the postal code is required by CFDI 4.0."""

    zip: str = Field(..., description="Código postal")
    country: str = Field(default=COUNTRY_CODE, description="ISO 3166 alpha-3")


class CustomerRequest(BaseModel):
    """Body of POST /customers."""

    legal_name: str
    tax_id: str
    tax_system: str
    address: Address


class Tax(BaseModel):
    type: str = TAX_TYPE_IVA
    rate: float = IVA_RATE


class Product(BaseModel):
    description: str
    product_key: str = PRODUCT_KEY
    unit_key: str = UNIT_KEY
    price: float = Field(..., ge=0)
    tax_included: bool = False
    taxability: str = TAXABILITY
    taxes: List[Tax] = Field(default_factory=lambda: [Tax()])


class InvoiceItem(BaseModel):
    quantity: int = ITEM_QUANTITY
    product: Product


class Issuer(BaseModel):
    """Issuing taxpayer, taken from settings."""

    tax_id: str
    tax_system: str
    address: Address


class InvoiceRequest(BaseModel):
    """Body of POST /invoices."""

    customer: str = Field(..., description="Customer ID returned by POST /customers")
    items: List[InvoiceItem]
    payment_form: str
    payment_method: str
    use: str
    type: str = CFDI_TYPE_INCOME
    external_id: str
    issuer: Optional[Issuer] = None


class CustomerResult(BaseModel):
    """The part of the customer response the flow needs."""

    model_config = ConfigDict(extra="ignore")

    id: str


class InvoiceResult(BaseModel):
    """The part of the invoice response the flow needs."""

    model_config = ConfigDict(extra="ignore")

    id: str
    uuid: str
    verification_url: str = ""
