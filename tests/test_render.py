"""
Tests for the board renderer. Rows and columns checked here are the same
ones the hit tests in test_geometry resolve.
"""
from tkan.errors import SaveError
from tkan.render import card_lines, render_board
from tkan.schema import Card

from conftest import FIXED_TIME

TODO_CARDS = slice(25, 47)    # TODO column x 24..47, cards start one cell in
REVIEW_CARDS = slice(73, 95)


def plain(lines):
    return [line.plain for line in lines]


def test_card_lines_are_boxed():
    card = Card(card_id="1", title="A very long title that will not fit", tags=["x"],
                assignee="alice", due_date="2025-01-15")
    lines = card_lines(card, 20)
    assert len(lines) == 5
    assert all(len(line) == 20 for line in lines)
    assert lines[0].startswith("╭") and lines[4].endswith("╯")
    assert "…" in lines[1]
    assert "#x" in lines[2]
    assert "@alice" in lines[3]


def test_board_fills_terminal(board, make_session):
    rows = plain(render_board(make_session(board)))
    assert len(rows) == 40
    assert all(len(row) == 120 for row in rows)
    assert "tkan: Test Board" in rows[0]
    assert "TODO (3)" in rows[2]
    assert "Archive (hidden)" in rows[38]
    assert set(rows[39]) == {"─"}


def test_cards_drawn_where_hit_test_finds_them(board, make_session):
    rows = plain(render_board(make_session(board)))
    # A and B stacked (2 rows each), C in full from row 7
    assert rows[3][TODO_CARDS].startswith("╭")
    assert rows[4][TODO_CARDS].startswith("│ A")
    assert rows[6][TODO_CARDS].startswith("│ B")
    assert rows[8][TODO_CARDS].startswith("│ C")
    assert rows[11][TODO_CARDS].startswith("╰")
    assert rows[12][TODO_CARDS].strip() == ""


def test_drag_shows_ghost_and_drop_indicator(board, make_session):
    session = make_session(board)
    generation = session.mouse_down(30, 3, 0.0)
    session.drag_timer(generation)
    session.mouse_move(80, 10, 0.3)
    lines = render_board(session)
    rows = plain(lines)

    # Indicator at the top of the empty REVIEW column
    assert rows[3][REVIEW_CARDS] == "─" * 22
    # Source card is still drawn in place, dimmed
    assert rows[4][TODO_CARDS].startswith("│ A")
    assert any("dim" in str(span.style) for span in lines[4].spans)
    assert "Moving 'A'" in rows[38]


def test_drop_indicator_does_not_shift_cards(board, make_session):
    session = make_session(board)
    generation = session.mouse_down(30, 3, 0.0)
    session.drag_timer(generation)
    session.mouse_move(30, 6, 0.3)  # lower half of B -> slot 2
    rows = plain(render_board(session))
    assert rows[7][TODO_CARDS] == "─" * 22  # drawn over C's top border
    assert rows[8][TODO_CARDS].startswith("│ C")


def test_hidden_cards_note_in_spare_row(board, make_session):
    rows = plain(render_board(make_session(board, height=13)))
    # content height 8: cards B (stacked) and C (full) use 7 rows
    assert "(1 more above)" in rows[10]


def test_hidden_cards_note_in_header_when_full(board, make_session):
    rows = plain(render_board(make_session(board, height=12)))
    assert "(1 more above)" in rows[2]


def test_detail_panel_shows_selected_card(board, make_session):
    session = make_session(board)
    session.toggle_details()
    card = board.get_card("B")
    card.description = "Needs a second pair of eyes"
    card.tags = ["review"]
    card.created_at = FIXED_TIME
    session.view.select(1, 1)

    panel = [row[80:] for row in plain(render_board(session))]
    assert panel[2].startswith("│ B")
    assert any("Needs a second pair of eyes" in row for row in panel)
    assert any("#review" in row for row in panel)
    assert any("Created: May 1, 2024" in row for row in panel)


def test_detail_panel_without_selection(board, make_session):
    session = make_session(board)
    session.toggle_details()
    session.view.select(3, 0)
    panel = [row[80:] for row in plain(render_board(session))]
    assert "No card selected" in panel[2]


def test_error_in_status_bar(board, make_session):
    session = make_session(board)
    session.last_error = SaveError("disk full")
    assert "Not saved: disk full" in plain(render_board(session))[38]


def test_zero_size_renders_nothing(board, make_session):
    assert render_board(make_session(board, width=0, height=0)) == []
