"""Unit tests for shift-click range selection"""

from collection_gateway.domain.selection import select_range

VISIBLE = ["a", "b", "c", "d", "e"]


def test_select_range_forward():
    assert select_range(VISIBLE, 0, 2) == ["a", "b", "c"]


def test_select_range_backward_is_inclusive():
    assert select_range(VISIBLE, 4, 1) == ["b", "c", "d", "e"]


def test_select_range_size_matches_index_distance():
    for last, current in [(0, 0), (1, 3), (4, 0)]:
        assert len(select_range(VISIBLE, last, current)) == abs(current - last) + 1


def test_select_range_without_previous_index_selects_current_row():
    assert select_range(VISIBLE, None, 3) == ["d"]


def test_select_range_skips_rows_outside_visible_list():
    assert select_range(VISIBLE, 3, 8) == ["d", "e"]
