"""Tests for utils/pagination.py."""

from __future__ import annotations

import pytest

from bundlelens.utils.pagination import PageResult, PaginationOptions, paginate


class TestPaginate:
    def test_first_page(self) -> None:
        page = paginate(list(range(12)), PaginationOptions(page_size=5, page_idx=0))

        assert page.items == [0, 1, 2, 3, 4]
        assert page.start_index == 0
        assert page.end_index == 5
        assert page.total_items == 12
        assert page.current_page == 0
        assert page.total_pages == 3
        assert page.has_next_page
        assert not page.has_previous_page

    def test_last_partial_page(self) -> None:
        page = paginate(list(range(12)), PaginationOptions(page_size=5, page_idx=2))

        assert page.items == [10, 11]
        assert page.start_index == 10
        assert page.end_index == 12
        assert not page.has_next_page
        assert page.has_previous_page

    def test_middle_page_has_both_neighbours(self) -> None:
        page = paginate(list(range(12)), PaginationOptions(page_size=5, page_idx=1))

        assert page.items == [5, 6, 7, 8, 9]
        assert page.has_next_page
        assert page.has_previous_page

    def test_default_options(self) -> None:
        page = paginate(list(range(7)))

        assert page.items == [0, 1, 2, 3, 4]
        assert page.total_pages == 2

    def test_out_of_range_index_clamps_to_last_page(self) -> None:
        page = paginate(list(range(7)), PaginationOptions(page_size=5, page_idx=9))

        assert page.current_page == 1
        assert page.items == [5, 6]

    def test_empty_sequence_has_one_empty_page(self) -> None:
        page = paginate([], PaginationOptions(page_size=5, page_idx=3))

        assert page.items == []
        assert page.total_pages == 1
        assert page.current_page == 0
        assert page.start_index == 0
        assert page.end_index == 0
        assert not page.has_next_page
        assert not page.has_previous_page

    def test_exact_multiple_has_no_trailing_empty_page(self) -> None:
        page = paginate(list(range(10)), PaginationOptions(page_size=5, page_idx=1))

        assert page.total_pages == 2
        assert page.items == [5, 6, 7, 8, 9]
        assert not page.has_next_page

    def test_zero_page_size_raises(self) -> None:
        with pytest.raises(ValueError, match="page_size"):
            paginate([1, 2], PaginationOptions(page_size=0))

    def test_negative_page_index_raises(self) -> None:
        with pytest.raises(ValueError, match="page_idx"):
            paginate([1, 2], PaginationOptions(page_idx=-1))

    def test_input_is_not_mutated(self) -> None:
        items = [3, 1, 2]
        paginate(items, PaginationOptions(page_size=1))
        assert items == [3, 1, 2]


class TestPageResultShowing:
    def test_one_based_description(self) -> None:
        page = paginate(list(range(12)), PaginationOptions(page_size=5, page_idx=2))

        assert page.showing("JS files") == "Showing 11-12 of 12 JS files (Page 3 of 3)"

    def test_defaults(self) -> None:
        page: PageResult[int] = PageResult()

        assert page.total_pages == 1
        assert not page.has_next_page
