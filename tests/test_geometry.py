"""
Tests for the geometry resolver: column hit test, stacked-card hit test,
insertion slots.
"""
import pytest

from tkan.geometry import (
    CARD_AREA_TOP,
    FULL_CARD_HEIGHT,
    STACKED_CARD_HEIGHT,
    Hit,
    Layout,
    Target,
    card_at,
    card_rows,
    card_under,
    column_at,
    drop_target,
    insertion_slot,
    locate,
    visible_window,
)


# ── layout ───────────────────────────────────────────────────────────────────


def test_layout_split():
    layout = Layout(120, 40, show_details=True)
    assert layout.detail_width == 40
    assert layout.board_width == 80
    assert layout.content_height == 35

    hidden = Layout(120, 40, show_details=False)
    assert hidden.detail_width == 0
    assert hidden.board_width == 120


def test_content_height_never_negative():
    assert Layout(80, 3).content_height == 0


# ── column_at ────────────────────────────────────────────────────────────────


class TestColumnAt:

    def test_even_columns(self):
        layout = Layout(120, 40, show_details=False)
        assert column_at(0, 5, layout, 5) == 0
        assert column_at(23, 5, layout, 5) == 0
        assert column_at(24, 5, layout, 5) == 1
        assert column_at(119, 5, layout, 5) == 4

    def test_outside_board(self):
        layout = Layout(120, 40, show_details=True)
        assert column_at(80, 5, layout, 5) is None   # detail panel
        assert column_at(-1, 5, layout, 5) is None
        assert column_at(10, -1, layout, 5) is None
        assert column_at(10, 40, layout, 5) is None

    def test_leftover_strip_is_not_a_column(self):
        layout = Layout(83, 40, show_details=False)  # 5 columns of 16, 3 cells left over
        assert column_at(79, 5, layout, 5) == 4
        assert column_at(80, 5, layout, 5) is None

    def test_no_columns_or_too_narrow(self):
        assert column_at(0, 5, Layout(120, 40, False), 0) is None
        assert column_at(0, 5, Layout(3, 40, False), 5) is None


# ── stacked hit test ─────────────────────────────────────────────────────────


def test_visible_window():
    assert visible_window(0, 35) == (0, 0)
    assert visible_window(3, 35) == (0, 3)
    # (9 - 5) // 2 = 2 stacked + 1 full
    assert visible_window(10, 9) == (7, 3)
    # Too short for even one full card still shows the last card
    assert visible_window(4, 2) == (3, 1)


def test_card_rows_match_stacking():
    assert card_rows(3, 35) == [
        (0, 0, STACKED_CARD_HEIGHT),
        (1, 2, STACKED_CARD_HEIGHT),
        (2, 4, FULL_CARD_HEIGHT),
    ]


@pytest.mark.parametrize("rel_y,expected", [
    (0, Hit(0, 0)),    # top half of first stacked card
    (1, Hit(0, 1)),    # bottom half
    (2, Hit(1, 1)),
    (3, Hit(1, 2)),
    (4, Hit(2, 2)),    # upper part of the full last card
    (5, Hit(2, 2)),
    (6, Hit(2, 3)),    # lower part inserts at end
    (8, Hit(2, 3)),
    (9, Hit(None, 3)), # below everything
    (30, Hit(None, 3)),
])
def test_locate_three_cards(rel_y, expected):
    assert locate(3, rel_y, 35) == expected


def test_locate_scrolled_column():
    # 10 cards, only 7..9 drawn
    assert locate(10, 0, 9) == Hit(7, 7)
    assert locate(10, 1, 9) == Hit(7, 8)
    assert locate(10, 4, 9) == Hit(9, 9)
    assert locate(10, 7, 9) == Hit(9, 10)


def test_empty_column():
    assert card_at(0, 0, 35) is None
    assert insertion_slot(0, 0, 35) == 0
    assert insertion_slot(0, 20, 35) == 0


def test_above_card_area():
    assert card_at(3, -1, 35) is None
    assert insertion_slot(3, -1, 35) is None
    assert insertion_slot(0, -1, 35) is None


@pytest.mark.parametrize("content_height", [0, 4, 5, 9, 12, 35])
@pytest.mark.parametrize("total", range(0, 13))
def test_card_and_slot_agree(total, content_height):
    """Whatever card_at reports, the insertion slot is just before or after it."""
    for rel_y in range(0, content_height + 10):
        card = card_at(total, rel_y, content_height)
        slot = insertion_slot(total, rel_y, content_height)
        assert 0 <= slot <= total
        if card is None:
            assert slot == total
        else:
            assert slot in (card, card + 1)


# ── screen coordinates ───────────────────────────────────────────────────────


def test_card_under_and_drop_target():
    layout = Layout(120, 40, show_details=False)
    counts = [1, 3, 0, 0, 0]
    # Column 1, first stacked card
    assert card_under(30, CARD_AREA_TOP, layout, counts) == Target(1, 0)
    assert drop_target(30, CARD_AREA_TOP + 1, layout, counts) == Target(1, 1)
    # Empty column: nothing to grab, but slot 0 to drop into
    assert card_under(60, CARD_AREA_TOP + 2, layout, counts) is None
    assert drop_target(60, CARD_AREA_TOP + 2, layout, counts) == Target(2, 0)


def test_header_row_is_not_a_target():
    layout = Layout(120, 40, show_details=False)
    counts = [1, 3, 0, 0, 0]
    assert card_under(30, CARD_AREA_TOP - 1, layout, counts) is None
    assert drop_target(30, CARD_AREA_TOP - 1, layout, counts) is None
