"""
Reorder engine: applies one card move to the board.

    move(board, view, source_column, source_index, dest_column, dest_index)

Column arguments are indices into the visible column list; the engine
resolves them by name to the board's own columns before mutating.
dest_index is an insertion slot in the destination column as it looks
*before* the move (0..len). Within one column that is the classic
remove-then-insert case: a slot after the source position shifts down by
one once the card is taken out, and the two slots touching the card itself
are no-ops.

Bad indices are ignored (MoveResult.moved is False). Persistence failures
do not undo the move; they come back in MoveResult.error and are published
as persist_failed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .errors import PersistenceError
from .events import CARD_MOVED, PERSIST_FAILED, BoardEventBridge
from .schema import Board, Card, utc_now
from .view import ViewState

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    """Outcome of ReorderEngine.move."""
    moved: bool = False
    card: Optional[Card] = None
    column: int = -1  # visible column now holding the card
    index: int = -1
    error: Optional[PersistenceError] = None


class ReorderEngine:
    """Moves cards within and across columns and persists the result."""

    def __init__(self, backend=None, events: Optional[BoardEventBridge] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.backend = backend
        self.events = events or BoardEventBridge()
        self.clock = clock

    def move(self, board: Board, view: ViewState, source_column: int, source_index: int,
             dest_column: int, dest_index: int) -> MoveResult:
        visible = board.visible_columns(view.show_archive)
        if not 0 <= source_column < len(visible) or not 0 <= dest_column < len(visible):
            return MoveResult()
        if dest_index < 0:
            return MoveResult()

        source = board.get_column(visible[source_column].name)
        dest = board.get_column(visible[dest_column].name)
        if source is None or dest is None:
            return MoveResult()
        if not 0 <= source_index < len(source.card_ids):
            return MoveResult()

        card = board.get_card(source.card_ids[source_index])
        if card is None:
            return MoveResult()

        same_column = source is dest
        if same_column:
            if dest_index in (source_index, source_index + 1):
                return MoveResult(card=card, column=source_column, index=source_index)
            if source_index < dest_index:
                dest_index -= 1

        from_name = source.name
        final = board.relocate(card.card_id, dest.name, dest_index)
        if final is None:
            return MoveResult()

        card.touch(self.clock())
        view.select(dest_column, final)
        logger.info(
            f"Moved card {card.card_id} from {from_name}[{source_index}] "
            f"to {dest.name}[{final}]"
        )

        error = self._persist(board, card, column_changed=not same_column)
        if error is None:
            self.events.emit(CARD_MOVED, card=card, column=dest.name, index=final)
        return MoveResult(moved=True, card=card, column=dest_column, index=final, error=error)

    def _persist(self, board: Board, card: Card, column_changed: bool) -> Optional[PersistenceError]:
        """Save the board; remote backends also get the membership change."""
        if self.backend is None:
            return None
        try:
            self.backend.save_board(board)
            if column_changed and self.backend.tracks_moves:
                self.backend.move_card(card.card_id, card.column)
        except PersistenceError as e:
            logger.warning(f"Move of card {card.card_id} not persisted: {e}")
            self.events.emit(PERSIST_FAILED, error=e, card_id=card.card_id)
            return e
        return None
