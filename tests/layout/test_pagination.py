import pytest
from pydantic import ValidationError

from invoicely.layout.pagination import compute_pagination_plan, plan_for


class TestComputePaginationPlan:
    def test_zero_items_single_empty_page(self):
        plan = compute_pagination_plan(0, 8)
        assert plan.total_pages == 1
        page = plan.pages[0]
        assert page.item_count == 0
        assert page.show_parties_block
        assert page.show_totals_block
        assert page.show_notes_block

    def test_exactly_one_page(self):
        plan = compute_pagination_plan(8, 8)
        assert plan.total_pages == 1
        assert plan.pages[0].item_range == range(0, 8)
        assert not plan.is_multi_page

    def test_one_over_capacity(self):
        plan = compute_pagination_plan(9, 8)
        assert plan.total_pages == 2
        assert plan.pages[1].item_range == range(8, 9)
        assert plan.is_multi_page

    def test_seventeen_items_capacity_eight(self):
        plan = compute_pagination_plan(17, 8)
        assert plan.total_pages == 3
        assert [p.item_count for p in plan.pages] == [8, 8, 1]
        assert [p.show_parties_block for p in plan.pages] == [True, False, False]
        assert [p.show_totals_block for p in plan.pages] == [False, False, True]
        assert [p.show_notes_block for p in plan.pages] == [False, False, True]

    @pytest.mark.parametrize("count,capacity", [(1, 1), (5, 1), (10, 3), (24, 8), (25, 8), (100, 10)])
    def test_pages_partition_items_in_order(self, count, capacity):
        plan = compute_pagination_plan(count, capacity)
        covered = [i for page in plan.pages for i in page.item_range]
        assert covered == list(range(count))
        assert plan.total_pages == max(1, -(-count // capacity))
        for page in plan.pages[:-1]:
            assert page.item_count == capacity
        assert 1 <= plan.pages[-1].item_count <= capacity

    def test_page_indices_sequential(self):
        plan = compute_pagination_plan(30, 7)
        assert [p.page_index for p in plan.pages] == list(range(plan.total_pages))

    def test_deterministic(self):
        assert compute_pagination_plan(17, 8) == compute_pagination_plan(17, 8)

    def test_page_of_item(self):
        plan = compute_pagination_plan(17, 8)
        assert plan.page_of_item(0) == 0
        assert plan.page_of_item(7) == 0
        assert plan.page_of_item(8) == 1
        assert plan.page_of_item(16) == 2

    def test_page_of_item_out_of_range(self):
        plan = compute_pagination_plan(3, 8)
        with pytest.raises(IndexError):
            plan.page_of_item(3)

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError, match="page_capacity"):
            compute_pagination_plan(5, 0)

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError, match="valid_item_count"):
            compute_pagination_plan(-1, 8)

    def test_plan_is_frozen(self):
        plan = compute_pagination_plan(3, 8)
        with pytest.raises(ValidationError):
            plan.page_capacity = 2


class TestPlanFor:
    def test_counts_only_valid_items(self, sample_invoice):
        doc = sample_invoice(item_count=9)
        doc.add_line_item()
        doc.add_line_item()
        plan = plan_for(doc, 8)
        assert plan.item_count == 9
        assert plan.total_pages == 2
