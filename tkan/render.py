"""
Board renderer.

render_board(session) paints the board view into a list of rich Text lines,
one per terminal row. Card placement comes from geometry.card_rows, the same
model the hit tests use, so what is drawn under the pointer is what a press
grabs. Rendering only reads the session.
"""
import textwrap
from datetime import datetime
from itertools import groupby
from typing import List, Optional, Tuple

from rich.text import Text

from .geometry import (
    CARD_AREA_TOP,
    FULL_CARD_HEIGHT,
    TITLE_HEIGHT,
    Target,
    card_rows,
    visible_window,
)
from .schema import Card, Column

# ── styles ─────────────────────────────────────────────────────────────────

STYLE_TITLE = "bold white on blue"
STYLE_SUBTITLE = "dim"
STYLE_HEADER = "bold"
STYLE_HEADER_SELECTED = "bold reverse cyan"
STYLE_CARD = "white"
STYLE_CARD_SELECTED = "bold cyan"
STYLE_GHOST = "dim italic"
STYLE_DROP = "bold magenta"
STYLE_SUBDUED = "dim"
STYLE_LABEL = "bold yellow"
STYLE_TAG = "green"
STYLE_STATUS = "black on white"
STYLE_ERROR = "bold white on red"
STYLE_BORDER = "bright_black"

HELP_TEXT = (
    "←/→: Columns | ↑/↓: Cards | Shift+arrows: Move | Tab: Details | "
    "a: Archive ({archive}) | n/e/d: New/Edit/Delete | p: Projects | ?: Help | q: Quit"
)

Cell = Tuple[str, str]


class Canvas:
    """Fixed-size grid of styled characters."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.cells: List[List[Cell]] = [[(" ", "")] * width for _ in range(height)]

    def put(self, x: int, y: int, text: str, style: str = "", limit: Optional[int] = None) -> None:
        """Write text at (x, y), clipped to the canvas and to `limit` cells."""
        if not 0 <= y < self.height:
            return
        if limit is not None:
            text = text[:max(0, limit)]
        row = self.cells[y]
        for i, ch in enumerate(text):
            cx = x + i
            if 0 <= cx < self.width:
                row[cx] = (ch, style)

    def lines(self) -> List[Text]:
        out = []
        for row in self.cells:
            line = Text(no_wrap=True, overflow="crop")
            for style, run in groupby(row, key=lambda cell: cell[1]):
                line.append("".join(ch for ch, _ in run), style=style or None)
            out.append(line)
        return out


def _fit(text: str, width: int) -> str:
    """Single line, truncated with an ellipsis."""
    text = " ".join(text.split())
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width == 1:
        return "…"
    return text[:width - 1] + "…"


def _date(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}"


# ── cards ──────────────────────────────────────────────────────────────────

def card_lines(card: Card, width: int) -> List[str]:
    """The full FULL_CARD_HEIGHT rows of a boxed card. Stacked cards show the first two."""
    inner = max(0, width - 4)
    meta = []
    if card.assignee:
        meta.append(f"@{card.assignee}")
    if card.due_date:
        meta.append(card.due_date)
    tags = " ".join(f"#{t}" for t in card.tags)

    def row(content: str) -> str:
        return "│ " + _fit(content, inner).ljust(inner) + " │"

    lines = [
        "╭" + "─" * max(0, width - 2) + "╮",
        row(card.title),
        row(tags),
        row("  ".join(meta)),
        "╰" + "─" * max(0, width - 2) + "╯",
    ]
    return lines[:FULL_CARD_HEIGHT]


def _drop_row(slot: int, rows: List[Tuple[int, int, int]], content_height: int) -> int:
    """Row (relative to the card area) where the drop indicator for `slot` goes."""
    if not rows:
        return 0
    for index, first_row, _ in rows:
        if index >= slot:
            return first_row
    _, first_row, height = rows[-1]
    return min(first_row + height, max(0, content_height - 1))


def _render_column(canvas: Canvas, session, col: Column, col_index: int,
                   x: int, width: int, content_height: int) -> Optional[str]:
    """Paint one column's cards. Returns the hidden-cards note if it did not fit."""
    view = session.view
    interaction = session.gesture.interaction
    total = len(col.card_ids)
    card_width = max(0, width - 2)
    rows = card_rows(total, content_height)
    start, _ = visible_window(total, content_height)

    dragging = session.gesture.dragging
    source: Optional[Target] = interaction.source if dragging else None

    for index, first_row, height in rows:
        card = session.board.get_card(col.card_ids[index])
        if card is None:
            continue
        if source is not None and source == Target(col_index, index):
            style = STYLE_GHOST
        elif col_index == view.selected_column and index == view.selected_card:
            style = STYLE_CARD_SELECTED
        else:
            style = STYLE_CARD
        for offset, text in enumerate(card_lines(card, card_width)[:height]):
            if first_row + offset >= content_height:
                break
            canvas.put(x + 1, CARD_AREA_TOP + first_row + offset, text, style)

    target = interaction.drop_target if dragging else None
    if target is not None and target.column == col_index:
        # Overlay only; card rows stay where the hit test expects them
        row = _drop_row(target.index, rows, content_height)
        canvas.put(x + 1, CARD_AREA_TOP + row, "─" * card_width, STYLE_DROP)

    if start <= 0:
        return None
    note = f"({start} more above)"
    used = rows[-1][1] + rows[-1][2] if rows else 0
    if used < content_height:
        canvas.put(x + 1, CARD_AREA_TOP + used, _fit(note, card_width), STYLE_SUBDUED)
        return None
    return note


# ── panels ─────────────────────────────────────────────────────────────────

def _render_title(canvas: Canvas, session) -> None:
    board = session.board
    canvas.put(0, 0, " " * canvas.width, STYLE_TITLE)
    canvas.put(1, 0, _fit(f"tkan: {board.name}", canvas.width - 2), STYLE_TITLE)
    subtitle = board.description or board.url
    if subtitle:
        canvas.put(1, 1, _fit(subtitle, canvas.width - 2), STYLE_SUBTITLE)


def _render_details(canvas: Canvas, session, x: int, width: int) -> None:
    top = TITLE_HEIGHT
    bottom = canvas.height - 2  # status bar row
    for y in range(top, bottom):
        canvas.put(x, y, "│", STYLE_BORDER)
    inner = width - 3
    if inner <= 0:
        return

    card = session.selected_card
    if card is None:
        canvas.put(x + 2, top, _fit("No card selected", inner), STYLE_SUBDUED)
        return

    lines: List[Tuple[str, str]] = [(card.title, STYLE_HEADER), ("", "")]
    if card.description:
        lines.append(("Description:", STYLE_LABEL))
        for para in card.description.splitlines():
            wrapped = textwrap.wrap(para, inner) or [""]
            lines.extend((w, "") for w in wrapped)
        lines.append(("", ""))
    if card.tags:
        lines.append(("Tags:", STYLE_LABEL))
        lines.append((" ".join(f"#{t}" for t in card.tags), STYLE_TAG))
        lines.append(("", ""))
    if card.assignee:
        lines.append((f"Assigned: {card.assignee}", ""))
    if card.due_date:
        lines.append((f"Due: {card.due_date}", ""))
    if card.url:
        lines.append((card.url, STYLE_SUBDUED))
    lines.append(("", ""))
    lines.append((f"Created: {_date(card.created_at)}", STYLE_SUBDUED))
    lines.append((f"Modified: {_date(card.modified_at)}", STYLE_SUBDUED))

    for offset, (text, style) in enumerate(lines):
        y = top + offset
        if y >= bottom:
            break
        canvas.put(x + 2, y, _fit(text, inner), style)


def status_text(session) -> Tuple[str, str]:
    """Status bar message and style."""
    if session.last_error is not None:
        return f"Not saved: {session.last_error}", STYLE_ERROR
    if session.gesture.dragging:
        card = session.gesture.interaction.dragging_card
        title = card.title if card else "card"
        return f"Moving {title!r}: release to drop, Esc to cancel", STYLE_STATUS
    archive = "visible" if session.view.show_archive else "hidden"
    return HELP_TEXT.format(archive=archive), STYLE_STATUS


def render_board(session) -> List[Text]:
    """Paint the whole board view at the session's current size."""
    layout = session.layout
    if layout.width <= 0 or layout.height <= 0:
        return []
    canvas = Canvas(layout.width, layout.height)
    _render_title(canvas, session)

    visible = session.visible_columns
    content_height = layout.content_height
    if visible and layout.board_width > 0:
        col_width = layout.board_width // len(visible)
        for i, col in enumerate(visible):
            x = i * col_width
            note = _render_column(canvas, session, col, i, x, col_width, content_height)
            label = f"{col.name} ({len(col.card_ids)})"
            if note:
                label = f"{label} {note}"
            selected = i == session.view.selected_column
            style = STYLE_HEADER_SELECTED if selected else STYLE_HEADER
            canvas.put(x, TITLE_HEIGHT, _fit(label, col_width).center(col_width), style, limit=col_width)

    if layout.detail_width > 0:
        _render_details(canvas, session, layout.board_width, layout.detail_width)

    message, style = status_text(session)
    status_row = layout.height - 2
    if status_row >= CARD_AREA_TOP:
        canvas.put(0, status_row, " " * layout.width, style)
        canvas.put(1, status_row, _fit(message, layout.width - 2), style)
    canvas.put(0, layout.height - 1, "─" * layout.width, STYLE_BORDER)
    return canvas.lines()
