from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from invoicely.layout.pagination import PageSpec, PaginationPlan, plan_for
from invoicely.models.invoice import InvoiceDocument, LineItem
from invoicely.models.party import PartyInfo, SenderProfile
from invoicely.settings import settings

OutputT = TypeVar("OutputT")


class PageRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int  # position among the document's valid items
    item: LineItem


class PageContent(BaseModel):
    """Everything one page shows, independent of how it is drawn."""

    model_config = ConfigDict(frozen=True)

    spec: PageSpec
    total_pages: int
    rows: tuple[PageRow, ...]

    @property
    def page_index(self) -> int:
        return self.spec.page_index

    @property
    def item_indices(self) -> tuple[int, ...]:
        return tuple(row.index for row in self.rows)

    @property
    def is_last(self) -> bool:
        return self.spec.page_index == self.total_pages - 1

    @property
    def show_empty_state(self) -> bool:
        return self.spec.page_index == 0 and not self.rows

    @property
    def show_page_numbers(self) -> bool:
        return self.total_pages > 1


def build_pages(document: InvoiceDocument, plan: PaginationPlan) -> Iterator[PageContent]:
    """Pair each PageSpec with the valid items it covers, lazily."""
    items = document.valid_line_items
    if plan.item_count != len(items):
        raise ValueError(f"Plan covers {plan.item_count} items but the document has {len(items)} valid items")
    for spec in plan.pages:
        rows = tuple(PageRow(index=i, item=items[i]) for i in spec.item_range)
        yield PageContent(spec=spec, total_pages=plan.total_pages, rows=rows)


class LayoutRenderer(ABC, Generic[OutputT]):
    """Draws an invoice from a pagination plan.

    Planning is shared; subclasses only decide how a page is drawn.
    """

    def __init__(self, page_capacity: int, currency: str | None = None) -> None:
        if page_capacity < 1:
            raise ValueError(f"page_capacity must be >= 1, got {page_capacity}")
        self.page_capacity = page_capacity
        self.currency = currency

    def plan(self, document: InvoiceDocument) -> PaginationPlan:
        return plan_for(document, self.page_capacity)

    def pages(self, document: InvoiceDocument, plan: PaginationPlan) -> Iterator[PageContent]:
        return build_pages(document, plan)

    def resolve_currency(self, sender: PartyInfo | None) -> str:
        if self.currency:
            return self.currency
        if isinstance(sender, SenderProfile) and sender.currency:
            return sender.currency
        return settings.default_currency

    @abstractmethod
    def render(
        self,
        document: InvoiceDocument,
        plan: PaginationPlan,
        sender: PartyInfo | None = None,
        recipient: PartyInfo | None = None,
    ) -> OutputT: ...
