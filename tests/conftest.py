"""Shared test fixtures for tkan tests."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure the package is importable without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))

from tkan.config import Config
from tkan.errors import SaveError
from tkan.schema import Board, Card
from tkan.session import BoardSession
from tkan.store import Backend

FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_board(layout):
    """Board from {column: [card ids]}; each card's title is its id."""
    board = Board("Test Board", columns=list(layout))
    for column, ids in layout.items():
        for card_id in ids:
            board.add_card(Card(card_id=card_id, title=card_id, created_at=FIXED_TIME,
                                modified_at=FIXED_TIME), column)
    return board


def column_ids(board, name):
    return list(board.get_column(name).card_ids)


class RecordingBackend(Backend):
    """In-memory backend that records every call and can be told to fail."""

    def __init__(self, board=None, tracks_moves=False, fail_with=None):
        self.board = board
        self.tracks_moves = tracks_moves
        self.fail_with = fail_with
        self.calls = []

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def load_board(self):
        return self.board

    def save_board(self, board):
        self.calls.append(("save_board", board.name))
        self._maybe_fail()

    def move_card(self, card_id, column_name):
        self.calls.append(("move_card", card_id, column_name))
        self._maybe_fail()

    def update_card(self, card):
        self.calls.append(("update_card", card.card_id))
        self._maybe_fail()

    def delete_card(self, card_id):
        self.calls.append(("delete_card", card_id))
        self._maybe_fail()


@pytest.fixture
def board():
    """Five visible columns plus the archive lane."""
    return make_board({
        "BACKLOG": ["b1"],
        "TODO": ["A", "B", "C"],
        "PROGRESS": ["p1", "p2"],
        "REVIEW": [],
        "DONE": [],
        "ARCHIVE": ["old"],
    })


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def failing_backend():
    return RecordingBackend(fail_with=SaveError("disk full"))


@pytest.fixture
def make_session():
    """Factory: session over a board, sized 120x40 with the detail panel off."""
    def _make(board, backend=None, width=120, height=40, **config):
        cfg = Config(show_details=False, **config)
        session = BoardSession(board, backend, cfg, clock=lambda: FIXED_TIME)
        session.resize(width, height)
        return session
    return _make
