"""Single-editor composing session behind the live preview."""

from __future__ import annotations

import logging
from typing import Any

from markupsafe import escape

from invoicely.constants import PREVIEW_UNAVAILABLE
from invoicely.layout.preview import PreviewPage, PreviewRenderer, PreviewSummary
from invoicely.models.invoice import InvoiceDocument, LineItem
from invoicely.models.party import Client, SenderProfile
from invoicely.services.suggestion_service import CostSuggestionIndex

logger = logging.getLogger(__name__)

_READ_ONLY_FIELDS = {"id", "uuid", "owner_id", "created_at", "updated_at", "line_items"}


class EditSession:
    """Holds a draft plus the parties fetched for it.

    Sender and recipient are loaded before editing starts and cached here, so
    rendering the preview never waits on anything.
    """

    def __init__(
        self,
        document: InvoiceDocument,
        sender: SenderProfile | None = None,
        recipient: Client | None = None,
        renderer: PreviewRenderer | None = None,
        suggestions: CostSuggestionIndex | None = None,
    ) -> None:
        self.document = document
        self.sender = sender
        self.recipient = recipient
        self.renderer = renderer or PreviewRenderer()
        self.suggestions = suggestions

    def set_field(self, name: str, value: Any) -> None:
        if name in _READ_ONLY_FIELDS or name not in InvoiceDocument.model_fields:
            raise ValueError(f"Field cannot be edited: {name}")
        setattr(self.document, name, value)

    def select_recipient(self, client: Client | None) -> None:
        self.recipient = client
        self.document.recipient_id = client.id if client else None

    def add_line_item(self) -> LineItem:
        return self.document.add_line_item()

    def update_line_item(self, index: int, **changes: Any) -> LineItem:
        return self.document.update_line_item(index, **changes)

    def remove_line_item(self, index: int) -> None:
        # The form always keeps one row to type into.
        if len(self.document.line_items) > 1:
            self.document.remove_line_item(index)

    def apply_suggestion(self, index: int, item_name: str) -> LineItem:
        """Name an item and pre-fill its cost from the owner's most recent use."""
        changes: dict[str, Any] = {"name": item_name}
        if self.suggestions is not None:
            recent_cost = self.suggestions.recent_unit_cost(self.document.owner_id, item_name)
            if recent_cost is not None and recent_cost > 0:
                changes["unit_cost"] = recent_cost
        return self.update_line_item(index, **changes)

    def render_preview(self) -> list[PreviewPage]:
        """Render every page, falling back to a placeholder page on failure.

        A broken preview must never end the editing session.
        """
        try:
            plan = self.renderer.plan(self.document)
            return list(self.renderer.render(self.document, plan, self.sender, self.recipient))
        except Exception:
            logger.exception("Preview rendering failed for invoice %r", self.document.invoice_number)
            return [
                PreviewPage(
                    page_index=0,
                    total_pages=1,
                    item_indices=(),
                    html=f'<section class="invoice-page preview-unavailable">{escape(PREVIEW_UNAVAILABLE)}</section>',
                )
            ]

    def render_preview_html(self) -> str:
        return "\n".join(page.html for page in self.render_preview())

    def summary(self) -> PreviewSummary:
        return self.renderer.summary(self.document)

    def snapshot(self) -> InvoiceDocument:
        return self.document.snapshot()
