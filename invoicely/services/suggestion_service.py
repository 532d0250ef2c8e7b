from __future__ import annotations

import logging
from decimal import Decimal

from invoicely.models.suggestion import ItemSuggestion
from invoicely.repositories.base import InvoiceRepository
from invoicely.settings import settings

logger = logging.getLogger(__name__)


class CostSuggestionIndex:
    """Frequency and recency lookups over an owner's past line items."""

    def __init__(self, invoice_repo: InvoiceRepository) -> None:
        self.invoice_repo = invoice_repo

    def top_item_names(self, owner_id: str, limit: int | None = None) -> list[ItemSuggestion]:
        limit = limit or settings.suggestion_limit
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        suggestions = self.invoice_repo.top_item_names(owner_id, limit)
        for suggestion in suggestions:
            suggestion.recent_cost = self.invoice_repo.recent_unit_cost(owner_id, suggestion.name)
        logger.debug("Top item names for owner=%s: %d", owner_id, len(suggestions))
        return suggestions

    def recent_unit_cost(self, owner_id: str, item_name: str) -> Decimal | None:
        name = item_name.strip()
        if not name:
            return None
        result = self.invoice_repo.recent_unit_cost(owner_id, name)
        logger.debug("recent_unit_cost owner=%s item=%r found=%s", owner_id, name, result is not None)
        return result
