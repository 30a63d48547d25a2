"""
Board session: one open board plus everything the event loop needs.

The UI layer forwards pointer and key events here; the session routes them
to the gesture machine, the reorder engine and the backend, and keeps the
view state in range. Nothing in this module touches the terminal.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from .config import Config
from .errors import PersistenceError
from .events import CARD_CREATED, CARD_DELETED, CARD_UPDATED, PERSIST_FAILED, BoardEventBridge
from .geometry import Layout
from .gesture import GestureMachine, GestureResult
from .reorder import MoveResult, ReorderEngine
from .schema import ARCHIVE_COLUMN, Board, Card, Column, utc_now
from .store import Backend
from .view import ViewState

logger = logging.getLogger(__name__)


class BoardSession:
    """Board + view + gestures + backend for one project."""

    def __init__(self, board: Board, backend: Optional[Backend] = None,
                 config: Optional[Config] = None, events: Optional[BoardEventBridge] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.board = board
        self.backend = backend
        self.config = config or Config()
        self.events = events or BoardEventBridge()
        self.clock = clock
        self.view = ViewState(
            show_archive=self.config.show_archive,
            show_details=self.config.show_details,
        )
        self.engine = ReorderEngine(backend, self.events, clock)
        self.gesture = GestureMachine(
            self.engine,
            drag_delay=self.config.drag_delay,
            drag_distance_sq=self.config.drag_distance_sq,
        )
        self.last_error: Optional[PersistenceError] = None
        self.events.subscribe(PERSIST_FAILED, self._on_persist_failed)

    def _on_persist_failed(self, error: PersistenceError, card_id: Optional[str] = None) -> None:
        self.last_error = error

    # ── view ───────────────────────────────────────────────────────────────

    def resize(self, width: int, height: int) -> None:
        self.view.width = max(0, width)
        self.view.height = max(0, height)

    @property
    def layout(self) -> Layout:
        return self.view.layout

    @property
    def visible_columns(self) -> List[Column]:
        return self.board.visible_columns(self.view.show_archive)

    @property
    def selected_column(self) -> Optional[Column]:
        visible = self.visible_columns
        if 0 <= self.view.selected_column < len(visible):
            return visible[self.view.selected_column]
        return None

    @property
    def selected_card(self) -> Optional[Card]:
        col = self.selected_column
        if col is None or not 0 <= self.view.selected_card < len(col.card_ids):
            return None
        return self.board.get_card(col.card_ids[self.view.selected_card])

    def _clamp(self) -> None:
        """Pull the selection back inside the visible board."""
        visible = self.visible_columns
        column = min(max(0, self.view.selected_column), max(0, len(visible) - 1))
        count = len(visible[column].card_ids) if visible else 0
        card = min(max(0, self.view.selected_card), max(0, count - 1))
        self.view.select(column, card)

    # ── pointer ────────────────────────────────────────────────────────────

    def mouse_down(self, x: int, y: int, now: float) -> Optional[int]:
        """Returns the generation to schedule the drag timer with, if any."""
        return self.gesture.press(x, y, now, self.board, self.view)

    def mouse_move(self, x: int, y: int, now: float) -> None:
        self.gesture.motion(x, y, now, self.board, self.view)

    def mouse_up(self, x: int, y: int, now: float) -> GestureResult:
        result = self.gesture.release(x, y, now, self.board, self.view)
        if result.move is not None:
            self._after_move(result.move)
        return result

    def drag_timer(self, generation: int) -> bool:
        return self.gesture.timer_fired(generation, self.board, self.view)

    def cancel_gesture(self) -> GestureResult:
        return self.gesture.cancel()

    @property
    def dragging(self) -> bool:
        return self.gesture.dragging

    # ── keyboard navigation ────────────────────────────────────────────────

    def select_left(self) -> None:
        self.gesture.cancel()
        self.view.selected_column -= 1
        self._clamp()

    def select_right(self) -> None:
        self.gesture.cancel()
        self.view.selected_column += 1
        self._clamp()

    def select_up(self) -> None:
        self.gesture.cancel()
        self.view.selected_card -= 1
        self._clamp()

    def select_down(self) -> None:
        self.gesture.cancel()
        self.view.selected_card += 1
        self._clamp()

    def select_first_column(self) -> None:
        self.gesture.cancel()
        self.view.select(0, 0)
        self._clamp()

    def select_last_column(self) -> None:
        self.gesture.cancel()
        self.view.select(len(self.visible_columns) - 1, 0)
        self._clamp()

    def toggle_details(self) -> None:
        self.gesture.cancel()
        self.view.show_details = not self.view.show_details

    def toggle_archive(self) -> None:
        self.gesture.cancel()
        current = self.selected_column
        self.view.show_archive = not self.view.show_archive
        # Stay on the same column if it is still visible
        if current is not None:
            names = [col.name for col in self.visible_columns]
            if current.name in names:
                self.view.selected_column = names.index(current.name)
        self._clamp()

    # ── keyboard moves ─────────────────────────────────────────────────────

    def _move(self, dest_column: int, dest_index: int) -> MoveResult:
        self.gesture.cancel()
        src_column, src_index = self.view.selected_column, self.view.selected_card
        if self.selected_card is None:
            return MoveResult()
        result = self.engine.move(self.board, self.view, src_column, src_index,
                                  dest_column, dest_index)
        self._after_move(result)
        return result

    def move_selected_left(self) -> MoveResult:
        """Append the selected card to the previous column."""
        dest = self.view.selected_column - 1
        if dest < 0:
            return MoveResult()
        return self._move(dest, len(self.visible_columns[dest].card_ids))

    def move_selected_right(self) -> MoveResult:
        """Append the selected card to the next column."""
        dest = self.view.selected_column + 1
        if dest >= len(self.visible_columns):
            return MoveResult()
        return self._move(dest, len(self.visible_columns[dest].card_ids))

    def move_selected_up(self) -> MoveResult:
        index = self.view.selected_card
        if index <= 0:
            return MoveResult()
        return self._move(self.view.selected_column, index - 1)

    def move_selected_down(self) -> MoveResult:
        col = self.selected_column
        index = self.view.selected_card
        if col is None or index + 1 >= len(col.card_ids):
            return MoveResult()
        # Slot after the next card
        return self._move(self.view.selected_column, index + 2)

    def _after_move(self, result: MoveResult) -> None:
        if result.moved and result.error is None:
            self.last_error = None

    # ── card editing ───────────────────────────────────────────────────────

    def _persist(self, card: Card, push: Callable[[], None]) -> bool:
        """Run a backend call then save the board. Failures are recorded, not raised."""
        try:
            push()
            if self.backend is not None:
                self.backend.save_board(self.board)
        except PersistenceError as e:
            logger.warning(f"Change to card {card.card_id} not persisted: {e}")
            self.events.emit(PERSIST_FAILED, error=e, card_id=card.card_id)
            return False
        self.last_error = None
        return True

    def create_card(self, title: str, description: str = "") -> Optional[Card]:
        """New card at the end of the selected column. None if the title is
        blank or the backend refused to create it."""
        self.gesture.cancel()
        title = title.strip()
        col = self.selected_column
        if not title or col is None:
            return None

        maker = self.backend or Backend()
        try:
            card = maker.create_card(self.board, title, description.strip(), col.name)
        except PersistenceError as e:
            logger.warning(f"Card {title!r} not created: {e}")
            self.events.emit(PERSIST_FAILED, error=e, card_id=None)
            return None

        index = self.board.add_card(card, col.name)
        self.view.select(self.view.selected_column, index)
        logger.info(f"Created card {card.card_id} in {col.name}")
        self._persist(card, lambda: None)
        self.events.emit(CARD_CREATED, card=card)
        return card

    def edit_selected(self, title: str, description: str = "") -> bool:
        self.gesture.cancel()
        card = self.selected_card
        title = title.strip()
        if card is None or not title:
            return False

        card.title = title
        card.description = description.strip()
        card.touch(self.clock())
        logger.info(f"Edited card {card.card_id}")
        push = (lambda: self.backend.update_card(card)) if self.backend else (lambda: None)
        self._persist(card, push)
        self.events.emit(CARD_UPDATED, card=card)
        return True

    def delete_selected(self) -> Optional[Card]:
        """Remove the selected card. Remote boards archive it instead."""
        self.gesture.cancel()
        card = self.selected_card
        if card is None:
            return None

        remote = self.backend is not None and self.backend.tracks_moves
        if remote and self.board.get_column(ARCHIVE_COLUMN) is not None:
            self.board.relocate(card.card_id, ARCHIVE_COLUMN, len(self.board.cards_in(ARCHIVE_COLUMN)))
            card.touch(self.clock())
        else:
            self.board.remove_card(card.card_id)
        logger.info(f"Deleted card {card.card_id}")
        self._clamp()

        push = (lambda: self.backend.delete_card(card.card_id)) if self.backend else (lambda: None)
        self._persist(card, push)
        self.events.emit(CARD_DELETED, card=card)
        return card
