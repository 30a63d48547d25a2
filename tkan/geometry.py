"""
Geometry resolver: terminal coordinates -> board positions.

Screen layout of the board view (rows from the top):

    0-1   title bar
    2     column headers
    3..   card area (content_height rows)
    ..    status bar, bottom border

Columns share the board width evenly (integer division). Inside a column
only the most recent cards that fit are drawn: every card but the last
shows just its top STACKED_CARD_HEIGHT rows, the last card is drawn in full.

Everything here is pure. Out-of-range input gives None, never an exception.
card_at() and insertion_slot() are two views of the same hit test
(locate), so "which card did I grab" and "where would it drop" cannot
disagree.
"""
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

FULL_CARD_HEIGHT = 5
STACKED_CARD_HEIGHT = 2

TITLE_HEIGHT = 2
HEADER_HEIGHT = 1
CARD_AREA_TOP = TITLE_HEIGHT + HEADER_HEIGHT
FOOTER_HEIGHT = 2  # status bar + bottom border


@dataclass(frozen=True)
class Layout:
    """Viewport dimensions, derived on every resize or panel toggle."""

    width: int = 0
    height: int = 0
    show_details: bool = True

    @property
    def detail_width(self) -> int:
        return self.width // 3 if self.show_details else 0

    @property
    def board_width(self) -> int:
        return self.width - self.detail_width

    @property
    def content_height(self) -> int:
        return max(0, self.height - CARD_AREA_TOP - FOOTER_HEIGHT)


class Hit(NamedTuple):
    """Result of a hit test inside one column's card area."""
    card: Optional[int]  # card under the pointer, None past the last card
    slot: int            # insertion slot, 0..total


class Target(NamedTuple):
    """A (visible column, card index or insertion slot) pair."""
    column: int
    index: int


def visible_window(total: int, content_height: int) -> Tuple[int, int]:
    """Return (start_index, cards_shown) for a column of `total` cards."""
    if total <= 0:
        return 0, 0
    max_stacked = max(0, (content_height - FULL_CARD_HEIGHT) // STACKED_CARD_HEIGHT)
    shown = min(total, max_stacked + 1)
    return total - shown, shown


def card_rows(total: int, content_height: int) -> List[Tuple[int, int, int]]:
    """(card_index, first_row, row_count) of every drawn card, relative to the card area."""
    start, shown = visible_window(total, content_height)
    rows = []
    for offset in range(shown):
        index = start + offset
        height = FULL_CARD_HEIGHT if index == total - 1 else STACKED_CARD_HEIGHT
        rows.append((index, offset * STACKED_CARD_HEIGHT, height))
    return rows


def locate(total: int, rel_y: int, content_height: int) -> Optional[Hit]:
    """Hit test at `rel_y` rows below the top of the card area.

    None above the card area. An empty column always yields slot 0.
    """
    if rel_y < 0:
        return None
    if total <= 0:
        return Hit(None, 0)

    start, shown = visible_window(total, content_height)
    stacked_area = (shown - 1) * STACKED_CARD_HEIGHT

    if rel_y < stacked_area:
        index = start + rel_y // STACKED_CARD_HEIGHT
        upper = rel_y % STACKED_CARD_HEIGHT < STACKED_CARD_HEIGHT // 2
        return Hit(index, index if upper else index + 1)

    offset = rel_y - stacked_area
    if offset < FULL_CARD_HEIGHT:
        last = total - 1
        return Hit(last, last if offset < FULL_CARD_HEIGHT // 2 else total)

    return Hit(None, total)


def card_at(total: int, rel_y: int, content_height: int) -> Optional[int]:
    """Index of the card drawn at `rel_y`, or None."""
    hit = locate(total, rel_y, content_height)
    return hit.card if hit else None


def insertion_slot(total: int, rel_y: int, content_height: int) -> Optional[int]:
    """Where a dropped card would land (0..total), or None above the card area."""
    hit = locate(total, rel_y, content_height)
    return hit.slot if hit else None


def column_at(x: int, y: int, layout: Layout, column_count: int) -> Optional[int]:
    """Visible column index under (x, y), or None outside the board area."""
    if column_count <= 0:
        return None
    if x < 0 or x >= layout.board_width:
        return None
    if y < 0 or y >= layout.height:
        return None
    col_width = layout.board_width // column_count
    if col_width <= 0:
        return None
    index = x // col_width
    if index >= column_count:
        return None
    return index


def card_under(x: int, y: int, layout: Layout, counts: Sequence[int]) -> Optional[Target]:
    """Card grabbed by a press at (x, y). `counts` are the visible columns' card counts."""
    col = column_at(x, y, layout, len(counts))
    if col is None:
        return None
    index = card_at(counts[col], y - CARD_AREA_TOP, layout.content_height)
    if index is None:
        return None
    return Target(col, index)


def drop_target(x: int, y: int, layout: Layout, counts: Sequence[int]) -> Optional[Target]:
    """Column and insertion slot for a drop at (x, y)."""
    col = column_at(x, y, layout, len(counts))
    if col is None:
        return None
    slot = insertion_slot(counts[col], y - CARD_AREA_TOP, layout.content_height)
    if slot is None:
        return None
    return Target(col, slot)
