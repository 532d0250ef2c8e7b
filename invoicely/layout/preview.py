"""Live HTML preview, re-rendered on every edit."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from decimal import Decimal
from functools import partial

from jinja2 import Environment, PackageLoader, select_autoescape
from pydantic import BaseModel, ConfigDict

from invoicely.constants import (
    FOOTER_TEXT,
    NO_ITEMS_PLACEHOLDER,
    NOT_SET,
    PROFILE_PLACEHOLDER,
    RECIPIENT_PLACEHOLDER,
    format_date,
    page_label,
)
from invoicely.layout.base import LayoutRenderer
from invoicely.layout.pagination import PaginationPlan
from invoicely.models import format_money, format_quantity
from invoicely.models.invoice import InvoiceDocument
from invoicely.models.party import PartyInfo
from invoicely.settings import settings

logger = logging.getLogger(__name__)

_env = Environment(
    loader=PackageLoader("invoicely", "templates"),
    autoescape=select_autoescape(),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.globals.update(
    format_date=format_date,
    format_quantity=format_quantity,
    page_label=page_label,
    not_set=NOT_SET,
    profile_placeholder=PROFILE_PLACEHOLDER,
    recipient_placeholder=RECIPIENT_PLACEHOLDER,
    no_items_placeholder=NO_ITEMS_PLACEHOLDER,
    footer_text=FOOTER_TEXT,
)


class PreviewPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_index: int
    total_pages: int
    item_indices: tuple[int, ...]
    html: str


class PreviewSummary(BaseModel):
    item_count: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    total_pages: int


class PreviewRenderer(LayoutRenderer[Iterator[PreviewPage]]):
    def __init__(self, page_capacity: int | None = None, currency: str | None = None) -> None:
        super().__init__(page_capacity or settings.preview_page_capacity, currency)
        self._template = _env.get_template("preview/page.html")

    def render(
        self,
        document: InvoiceDocument,
        plan: PaginationPlan,
        sender: PartyInfo | None = None,
        recipient: PartyInfo | None = None,
    ) -> Iterator[PreviewPage]:
        money = partial(format_money, currency_code=self.resolve_currency(sender))
        for page in self.pages(document, plan):
            html = self._template.render(
                page=page,
                document=document,
                sender=sender,
                recipient=recipient,
                money=money,
            )
            yield PreviewPage(
                page_index=page.page_index,
                total_pages=page.total_pages,
                item_indices=page.item_indices,
                html=html,
            )
        logger.debug("Preview rendered: invoice=%s pages=%d", document.invoice_number, plan.total_pages)

    def summary(self, document: InvoiceDocument) -> PreviewSummary:
        """Figures shown beside the preview: counts, totals and page count."""
        return PreviewSummary(
            item_count=len(document.valid_line_items),
            subtotal=document.subtotal,
            tax=document.tax,
            total=document.total,
            total_pages=self.plan(document).total_pages,
        )


def render_preview_pages(
    document: InvoiceDocument,
    plan: PaginationPlan,
    sender: PartyInfo | None = None,
    recipient: PartyInfo | None = None,
    currency: str | None = None,
) -> Iterator[PreviewPage]:
    return PreviewRenderer(plan.page_capacity, currency).render(document, plan, sender, recipient)
