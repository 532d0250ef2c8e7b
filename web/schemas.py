from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from invoicely.models import parse_money
from invoicely.models.invoice import InvoiceDocument, InvoiceStatus, LineItem


def _typed_amount(value):
    """Accept amounts as typed into a form: '1,250', '$1,250.00'."""
    if not isinstance(value, str):
        return value
    amount = parse_money(value)
    if amount is None:
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


class LineItemPayload(BaseModel):
    name: str = ""
    description: str = ""
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("unit_cost", mode="before")
    @classmethod
    def parse_unit_cost(cls, value):
        return _typed_amount(value)


class InvoicePayload(BaseModel):
    recipient_id: int | None = None
    invoice_number: str = ""
    issue_date: date | None = None
    due_date: date | None = None
    customer_ref: str = ""
    line_items: list[LineItemPayload] = []
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str = ""
    status: InvoiceStatus = InvoiceStatus.DRAFT

    @field_validator("tax", mode="before")
    @classmethod
    def parse_tax(cls, value):
        return _typed_amount(value)

    def to_document(self, owner_id: str, existing: InvoiceDocument | None = None) -> InvoiceDocument:
        data = self.model_dump(exclude={"line_items"})
        document = InvoiceDocument(
            owner_id=owner_id,
            line_items=[LineItem(**item.model_dump()) for item in self.line_items],
            **data,
        )
        if existing is not None:
            document.id = existing.id
            document.uuid = existing.uuid
            document.created_at = existing.created_at
        return document
