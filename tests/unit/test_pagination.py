"""Tests for page slicing."""

import pytest

from jobtrack.core.pagination import paginate


class TestPaginate:
    def test_first_page(self) -> None:
        page = paginate(list(range(25)), page=1, page_size=10)
        assert page.items == list(range(10))
        assert page.total_items == 25
        assert page.total_pages == 3
        assert (page.first_index, page.last_index) == (1, 10)

    def test_last_partial_page(self) -> None:
        page = paginate(list(range(25)), page=3, page_size=10)
        assert page.items == [20, 21, 22, 23, 24]
        assert (page.first_index, page.last_index) == (21, 25)

    def test_twenty_three_items_by_ten(self) -> None:
        items = list(range(1, 24))
        assert paginate(items, 1, 10).items == list(range(1, 11))
        last = paginate(items, 3, 10)
        assert last.items == [21, 22, 23]
        assert last.total_pages == 3

    def test_page_past_end_clamped(self) -> None:
        page = paginate(list(range(5)), page=9, page_size=10)
        assert page.page == 1
        assert page.items == list(range(5))

    def test_page_below_one_clamped(self) -> None:
        assert paginate([1, 2, 3], page=0, page_size=2).page == 1

    def test_empty_list_has_one_page(self) -> None:
        page = paginate([], page=1, page_size=10)
        assert page.items == []
        assert page.total_pages == 1
        assert (page.first_index, page.last_index) == (0, 0)

    def test_never_more_than_page_size(self) -> None:
        items = list(range(101))
        for page_size in (10, 20, 50, 100):
            for number in range(1, 12):
                page = paginate(items, number, page_size)
                assert len(page.items) <= page_size
                assert 1 <= page.page <= page.total_pages

    def test_invalid_page_size(self) -> None:
        with pytest.raises(ValueError, match="page_size must be positive"):
            paginate([1], page=1, page_size=0)
