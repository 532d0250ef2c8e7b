from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from invoicely.models import round2


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    COMPLETE = "complete"


class LineItem(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: int | None = None
    name: str = ""
    description: str = ""
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_total(self) -> Decimal:
        return round2(self.quantity * self.unit_cost)

    @property
    def is_valid(self) -> bool:
        """Items without a name are kept while editing but never rendered or persisted."""
        return bool(self.name.strip())


class InvoiceDocument(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: int | None = None
    uuid: str = ""
    owner_id: str = ""
    recipient_id: int | None = None
    invoice_number: str = ""
    issue_date: date | None = None
    due_date: date | None = None
    customer_ref: str = ""
    line_items: list[LineItem] = []
    tax: Decimal = Field(default=Decimal("0"), ge=0)  # flat amount, not a rate
    notes: str = ""
    status: InvoiceStatus = InvoiceStatus.DRAFT
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def new_draft(cls, owner_id: str, **fields: Any) -> InvoiceDocument:
        return cls(owner_id=owner_id, line_items=[LineItem()], **fields)

    @property
    def valid_line_items(self) -> list[LineItem]:
        return [item for item in self.line_items if item.is_valid]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def subtotal(self) -> Decimal:
        return round2(sum((item.line_total for item in self.valid_line_items), Decimal("0")))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Decimal:
        return round2(self.subtotal + self.tax)

    def add_line_item(self, item: LineItem | None = None) -> LineItem:
        item = item or LineItem()
        self.line_items.append(item)
        return item

    def update_line_item(self, index: int, **changes: Any) -> LineItem:
        """Apply field changes to one item, all or nothing.

        The replacement is validated before it is swapped in, so a rejected
        change leaves the existing item untouched.
        """
        unknown = set(changes) - set(LineItem.model_fields)
        if unknown:
            raise ValueError(f"Unknown line item fields: {', '.join(sorted(unknown))}")
        current = self.line_items[index]
        data = current.model_dump(exclude={"line_total"})
        data.update(changes)
        updated = LineItem.model_validate(data)
        self.line_items[index] = updated
        return updated

    def remove_line_item(self, index: int) -> LineItem:
        return self.line_items.pop(index)

    def snapshot(self) -> InvoiceDocument:
        return self.model_copy(deep=True)
