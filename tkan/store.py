"""
Board storage backends.

Backend is the persistence contract the engine and session talk to;
LocalBackend keeps a board in a YAML file (.tkan.yaml by default).

    load_board()                     -> Board           LoadError
    save_board(board)                                   SaveError
    move_card(card_id, column_name)                     RemoteError / SaveError
    create_card(board, title, description, column_name) -> Card
    update_card(card)
    delete_card(card_id)

tracks_moves is True for backends where a move must be pushed per card
(remote trackers); for file backends the full save is what makes a move
durable.
"""
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Optional

import yaml

from .errors import LoadError, SaveError
from .schema import Board, Card, utc_now

logger = logging.getLogger(__name__)

BOARD_FILENAME = ".tkan.yaml"


class Backend:
    """Persistence contract. Subclasses override what they support."""

    tracks_moves = False

    def load_board(self) -> Board:
        raise NotImplementedError

    def save_board(self, board: Board) -> None:
        raise NotImplementedError

    def move_card(self, card_id: str, column_name: str) -> None:
        raise NotImplementedError

    def create_card(self, board: Board, title: str, description: str, column_name: str) -> Card:
        """Build a new card for `column_name`. The caller adds it to the board."""
        now = utc_now()
        return Card(
            card_id=board.next_card_id(),
            title=title,
            description=description,
            column=column_name,
            created_at=now,
            modified_at=now,
        )

    def update_card(self, card: Card) -> None:
        """Push edited card fields. File backends rely on save_board instead."""
        return None

    def delete_card(self, card_id: str) -> None:
        """Forget a card. File backends rely on save_board instead."""
        return None


class LocalBackend(Backend):
    """YAML board file on local disk."""

    def __init__(self, path: str = BOARD_FILENAME):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"LocalBackend({str(self.path)!r})"

    def load_board(self) -> Board:
        """Read and parse the board file."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise LoadError(f"board file not found: {self.path}") from e
        except OSError as e:
            raise LoadError(f"failed to read board file {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise LoadError(f"failed to parse board YAML {self.path}: {e}") from e

        if data is None:
            raise LoadError(f"board file is empty: {self.path}")
        try:
            board = Board.from_dict(data)
        except (TypeError, ValueError) as e:
            raise LoadError(f"malformed board file {self.path}: {e}") from e

        logger.debug(f"Loaded board {board.name!r} ({len(board.cards)} cards) from {self.path}")
        return board

    def save_board(self, board: Board) -> None:
        """Write the whole board, stamping its modified time.

        The YAML goes to a temp file beside the board file and is then
        renamed over it, so a failed write leaves the previous file intact.
        """
        board.modified_at = utc_now()
        tmp_name = None
        try:
            text = yaml.safe_dump(board.to_dict(), sort_keys=False, allow_unicode=True)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent,
                prefix=f"{self.path.name}.", suffix=".tmp", delete=False,
            ) as f:
                tmp_name = f.name
                f.write(text)
            if self.path.exists():
                os.chmod(tmp_name, stat.S_IMODE(self.path.stat().st_mode))
            os.replace(tmp_name, self.path)
        except (OSError, yaml.YAMLError) as e:
            if tmp_name is not None:
                self._discard(tmp_name)
            raise SaveError(f"failed to write board file {self.path}: {e}") from e
        logger.debug(f"Saved board {board.name!r} to {self.path}")

    @staticmethod
    def _discard(tmp_name: str) -> None:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temp file {tmp_name}: {e}")

    def move_card(self, card_id: str, column_name: str) -> None:
        """Standalone move: load the file, move the card to the end of the column, save."""
        try:
            board = self.load_board()
        except LoadError as e:
            raise SaveError(str(e)) from e
        if board.relocate(card_id, column_name, len(board.cards_in(column_name))) is None:
            logger.warning(f"move_card: card {card_id} or column {column_name} not in {self.path}")
            return
        card: Optional[Card] = board.get_card(card_id)
        card.touch()
        self.save_board(board)
