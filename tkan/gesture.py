"""
Gesture state machine: tells clicks from drags and drives drops.

    IDLE ──press on a card──▶ PRESSED ──delay or movement──▶ DRAGGING
      ▲                         │ release: click               │ release: drop
      └─────────────────────────┴──────────────── cancel ──────┘

A press selects the card immediately. It turns into a drag on whichever
comes first: the hold delay elapses (the caller schedules a wake-up and
passes back the generation it got from press()) or the pointer moves more
than a small squared distance. Every press bumps the generation, so a timer
that fires after release or after a newer press is ignored.

Board, view and layout are passed into every call; the machine itself only
holds the ephemeral Interaction.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .geometry import Target, card_under, drop_target
from .reorder import MoveResult, ReorderEngine
from .schema import Board, Card
from .view import ViewState

logger = logging.getLogger(__name__)

DRAG_DELAY = 0.15       # seconds held before a press becomes a drag
DRAG_DISTANCE_SQ = 4    # squared cells moved before a press becomes a drag


class GestureState(Enum):
    IDLE = "idle"
    PRESSED = "pressed"      # button down on a card, not yet a drag
    DRAGGING = "dragging"


class Outcome(Enum):
    NONE = "none"            # event had no effect
    CLICK = "click"          # released before escalation
    CANCELLED = "cancelled"  # competing input discarded the gesture
    DROPPED = "dropped"      # drag released on a valid target
    ABANDONED = "abandoned"  # drag released outside the board


@dataclass
class Interaction:
    """Transient pointer state, never persisted."""
    state: GestureState = GestureState.IDLE
    press_x: int = 0
    press_y: int = 0
    press_time: float = 0.0
    source: Optional[Target] = None
    dragging_card: Optional[Card] = None
    drop_target: Optional[Target] = None
    generation: int = 0

    def clear(self) -> None:
        """Back to IDLE. The generation survives so stale timers stay stale."""
        self.state = GestureState.IDLE
        self.source = None
        self.dragging_card = None
        self.drop_target = None


@dataclass
class GestureResult:
    outcome: Outcome
    source: Optional[Target] = None
    target: Optional[Target] = None
    move: Optional[MoveResult] = None


def _counts(board: Board, view: ViewState) -> List[int]:
    return [len(col.card_ids) for col in board.visible_columns(view.show_archive)]


class GestureMachine:
    """Consumes pointer events; calls the reorder engine once per drop."""

    def __init__(self, engine: ReorderEngine, drag_delay: float = DRAG_DELAY,
                 drag_distance_sq: int = DRAG_DISTANCE_SQ):
        self.engine = engine
        self.drag_delay = drag_delay
        self.drag_distance_sq = drag_distance_sq
        self.interaction = Interaction()

    @property
    def state(self) -> GestureState:
        return self.interaction.state

    @property
    def dragging(self) -> bool:
        return self.interaction.state is GestureState.DRAGGING

    def press(self, x: int, y: int, now: float, board: Board, view: ViewState) -> Optional[int]:
        """Button down. Returns the generation to schedule the drag timer with,
        or None if nothing was pressed."""
        it = self.interaction
        it.clear()
        target = card_under(x, y, view.layout, _counts(board, view))
        if target is None:
            return None

        it.generation += 1
        it.state = GestureState.PRESSED
        it.press_x, it.press_y, it.press_time = x, y, now
        it.source = target
        view.select(target.column, target.index)
        return it.generation

    def motion(self, x: int, y: int, now: float, board: Board, view: ViewState) -> None:
        it = self.interaction
        if it.state is GestureState.PRESSED:
            dx = x - it.press_x
            dy = y - it.press_y
            if dx * dx + dy * dy > self.drag_distance_sq or now - it.press_time >= self.drag_delay:
                self._escalate(board, view)
        elif it.state is GestureState.DRAGGING:
            it.drop_target = drop_target(x, y, view.layout, _counts(board, view))

    def timer_fired(self, generation: int, board: Board, view: ViewState) -> bool:
        """Hold delay elapsed. True if this started a drag."""
        it = self.interaction
        if generation != it.generation or it.state is not GestureState.PRESSED:
            return False
        return self._escalate(board, view)

    def _escalate(self, board: Board, view: ViewState) -> bool:
        it = self.interaction
        visible = board.visible_columns(view.show_archive)
        src = it.source
        if src is None or src.column >= len(visible) or src.index >= len(visible[src.column].card_ids):
            it.clear()
            return False
        it.dragging_card = board.get_card(visible[src.column].card_ids[src.index])
        it.drop_target = src
        it.state = GestureState.DRAGGING
        logger.debug(f"Drag started: card {it.dragging_card.card_id} at {src}")
        return True

    def release(self, x: int, y: int, now: float, board: Board, view: ViewState) -> GestureResult:
        it = self.interaction
        src = it.source

        if it.state is GestureState.PRESSED:
            view.select(src.column, src.index)
            it.clear()
            return GestureResult(Outcome.CLICK, source=src)

        if it.state is GestureState.DRAGGING:
            target = drop_target(x, y, view.layout, _counts(board, view))
            it.clear()
            if target is None:
                logger.debug(f"Drag from {src} abandoned at ({x}, {y})")
                return GestureResult(Outcome.ABANDONED, source=src)
            result = self.engine.move(board, view, src.column, src.index, target.column, target.index)
            return GestureResult(Outcome.DROPPED, source=src, target=target, move=result)

        return GestureResult(Outcome.NONE)

    def cancel(self) -> GestureResult:
        """Competing input (key press, view switch): drop any pending gesture."""
        it = self.interaction
        if it.state is GestureState.IDLE:
            return GestureResult(Outcome.NONE)
        src = it.source
        it.clear()
        return GestureResult(Outcome.CANCELLED, source=src)
