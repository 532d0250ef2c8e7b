"""Page breaking shared by the preview and the exported document.

The plan is a pure function of ``(valid_item_count, page_capacity)``. Both
renderers call it fresh on every render, so the page count and break points a
user sees while typing are the ones the exported PDF will have for the same
capacity.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from invoicely.models.invoice import InvoiceDocument


class PageSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_index: int
    item_start: int
    item_end: int  # exclusive
    show_parties_block: bool
    show_totals_block: bool
    show_notes_block: bool

    @property
    def item_range(self) -> range:
        return range(self.item_start, self.item_end)

    @property
    def item_count(self) -> int:
        return self.item_end - self.item_start


class PaginationPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_capacity: int
    item_count: int
    pages: tuple[PageSpec, ...]

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def is_multi_page(self) -> bool:
        return len(self.pages) > 1

    def page_of_item(self, item_index: int) -> int:
        if not 0 <= item_index < self.item_count:
            raise IndexError(f"Item index {item_index} outside [0, {self.item_count})")
        return item_index // self.page_capacity


def compute_pagination_plan(valid_item_count: int, page_capacity: int) -> PaginationPlan:
    """Partition ``valid_item_count`` items into pages of ``page_capacity``.

    Zero items still yield one (empty) page so the header, parties block and
    empty state always render. Parties go on the first page, totals and notes
    on the last one.

    Raises ValueError for a capacity below one or a negative count; those are
    caller bugs, validated before any rendering happens.
    """
    if page_capacity < 1:
        raise ValueError(f"page_capacity must be >= 1, got {page_capacity}")
    if valid_item_count < 0:
        raise ValueError(f"valid_item_count must be >= 0, got {valid_item_count}")

    total_pages = max(1, -(-valid_item_count // page_capacity))
    last = total_pages - 1
    pages = tuple(
        PageSpec(
            page_index=i,
            item_start=min(i * page_capacity, valid_item_count),
            item_end=min((i + 1) * page_capacity, valid_item_count),
            show_parties_block=i == 0,
            show_totals_block=i == last,
            show_notes_block=i == last,
        )
        for i in range(total_pages)
    )
    return PaginationPlan(page_capacity=page_capacity, item_count=valid_item_count, pages=pages)


def plan_for(document: InvoiceDocument, page_capacity: int) -> PaginationPlan:
    return compute_pagination_plan(len(document.valid_line_items), page_capacity)
