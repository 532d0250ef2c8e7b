from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from invoicely.services.suggestion_service import CostSuggestionIndex
from web.deps import get_owner_id, get_suggestion_index

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/line-items")


@router.get("/suggestions")
async def line_item_suggestions(
    limit: int | None = Query(default=None, ge=1, le=100),
    owner_id: str = Depends(get_owner_id),
    index: CostSuggestionIndex = Depends(get_suggestion_index),
):
    return [suggestion.model_dump(mode="json") for suggestion in index.top_item_names(owner_id, limit)]


@router.get("/recent-cost")
async def line_item_recent_cost(
    item_name: str = Query(min_length=1),
    owner_id: str = Depends(get_owner_id),
    index: CostSuggestionIndex = Depends(get_suggestion_index),
):
    recent_cost = index.recent_unit_cost(owner_id, item_name)
    return {"item_name": item_name, "recent_cost": str(recent_cost) if recent_cost is not None else None}
