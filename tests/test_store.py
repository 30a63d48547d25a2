"""
Tests for the YAML board file backend.
"""
import stat
import tempfile
from unittest.mock import patch

import pytest
import yaml

from tkan.errors import LoadError, SaveError
from tkan.schema import default_board
from tkan.store import Backend, LocalBackend

from conftest import column_ids


def test_save_then_load(tmp_path, board):
    path = tmp_path / ".tkan.yaml"
    store = LocalBackend(str(path))
    board.relocate("C", "TODO", 0)
    store.save_board(board)

    loaded = store.load_board()
    assert loaded.name == "Test Board"
    assert column_ids(loaded, "TODO") == ["C", "A", "B"]
    assert loaded.get_card("A").created_at == board.get_card("A").created_at
    assert loaded.invariant_violations() == []


def test_saved_file_is_plain_yaml(tmp_path):
    path = tmp_path / "board.yaml"
    LocalBackend(str(path)).save_board(default_board())
    data = yaml.safe_load(path.read_text())
    assert data["name"] == "My Project"
    assert data["columns"][0] == {"name": "BACKLOG"}
    assert data["cards"][0]["id"] == "0"
    assert isinstance(data["cards"][0]["created_at"], str)


def test_save_stamps_modified_time(tmp_path, board):
    board.modified_at = board.created_at.replace(year=2000)
    LocalBackend(str(tmp_path / "b.yaml")).save_board(board)
    assert board.modified_at.year > 2000


def test_save_creates_parent_directory(tmp_path, board):
    path = tmp_path / "nested" / "dir" / ".tkan.yaml"
    LocalBackend(str(path)).save_board(board)
    assert path.exists()


def test_save_failure_raises_save_error(tmp_path, board):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    with pytest.raises(SaveError):
        LocalBackend(str(blocker / ".tkan.yaml")).save_board(board)


def test_failed_write_keeps_previous_board(tmp_path, board):
    path = tmp_path / ".tkan.yaml"
    store = LocalBackend(str(path))
    store.save_board(board)
    real_tempfile = tempfile.NamedTemporaryFile

    def short_write(*args, **kwargs):
        f = real_tempfile(*args, **kwargs)

        def write(text):
            f.file.write(text[:20])
            raise OSError(28, "No space left on device")

        f.write = write
        return f

    board.relocate("A", "DONE", 0)
    with patch("tkan.store.tempfile.NamedTemporaryFile", short_write):
        with pytest.raises(SaveError, match="No space"):
            store.save_board(board)

    reloaded = store.load_board()
    assert column_ids(reloaded, "TODO") == ["A", "B", "C"]
    assert column_ids(reloaded, "DONE") == []
    assert sorted(p.name for p in tmp_path.iterdir()) == [".tkan.yaml"]


def test_failed_rename_keeps_previous_board(tmp_path, board):
    path = tmp_path / ".tkan.yaml"
    store = LocalBackend(str(path))
    store.save_board(board)
    before = path.read_text()

    board.name = "Renamed"
    with patch("tkan.store.os.replace", side_effect=OSError(5, "I/O error")):
        with pytest.raises(SaveError):
            store.save_board(board)

    assert path.read_text() == before
    assert store.load_board().name == "Test Board"
    assert sorted(p.name for p in tmp_path.iterdir()) == [".tkan.yaml"]


def test_save_keeps_file_mode(tmp_path, board):
    path = tmp_path / ".tkan.yaml"
    store = LocalBackend(str(path))
    store.save_board(board)
    path.chmod(0o640)
    store.save_board(board)
    assert stat.S_IMODE(path.stat().st_mode) == 0o640


# ── load errors ──────────────────────────────────────────────────────────────


def test_missing_file(tmp_path):
    with pytest.raises(LoadError, match="not found"):
        LocalBackend(str(tmp_path / "missing.yaml")).load_board()


def test_empty_file(tmp_path):
    path = tmp_path / ".tkan.yaml"
    path.write_text("")
    with pytest.raises(LoadError, match="empty"):
        LocalBackend(str(path)).load_board()


def test_invalid_yaml(tmp_path):
    path = tmp_path / ".tkan.yaml"
    path.write_text("name: [unclosed\n")
    with pytest.raises(LoadError, match="parse"):
        LocalBackend(str(path)).load_board()


def test_malformed_board(tmp_path):
    path = tmp_path / ".tkan.yaml"
    path.write_text("name: B\ncards:\n  - title: no id\n")
    with pytest.raises(LoadError, match="malformed"):
        LocalBackend(str(path)).load_board()


def test_duplicate_card_ids_are_malformed(tmp_path):
    path = tmp_path / ".tkan.yaml"
    path.write_text(
        "name: B\n"
        "cards:\n"
        "  - {id: '1', title: a, column: TODO}\n"
        "  - {id: '1', title: b, column: DONE}\n"
    )
    with pytest.raises(LoadError):
        LocalBackend(str(path)).load_board()


def test_hand_written_file_with_unquoted_timestamps(tmp_path):
    path = tmp_path / ".tkan.yaml"
    path.write_text(
        "name: Hand made\n"
        "columns: [TODO, DONE]\n"
        "cards:\n"
        "  - id: 1\n"
        "    title: First\n"
        "    column: DONE\n"
        "    created_at: 2024-01-02 03:04:05\n"
        "    due_date: 2025-01-15\n"
    )
    board = LocalBackend(str(path)).load_board()
    card = board.get_card("1")
    assert card.column == "DONE"
    assert card.created_at.tzinfo is not None
    assert card.due_date == "2025-01-15"


# ── standalone move ──────────────────────────────────────────────────────────


def test_move_card_appends_and_saves(tmp_path, board):
    store = LocalBackend(str(tmp_path / ".tkan.yaml"))
    store.save_board(board)
    store.move_card("A", "PROGRESS")
    reloaded = store.load_board()
    assert column_ids(reloaded, "PROGRESS") == ["p1", "p2", "A"]
    assert column_ids(reloaded, "TODO") == ["B", "C"]


def test_move_card_unknown_card_leaves_file_alone(tmp_path, board):
    store = LocalBackend(str(tmp_path / ".tkan.yaml"))
    store.save_board(board)
    before = (tmp_path / ".tkan.yaml").read_text()
    store.move_card("nope", "DONE")
    assert (tmp_path / ".tkan.yaml").read_text() == before


def test_move_card_without_file_is_save_error(tmp_path):
    with pytest.raises(SaveError):
        LocalBackend(str(tmp_path / "missing.yaml")).move_card("1", "DONE")


# ── base contract ────────────────────────────────────────────────────────────


def test_base_create_card_allocates_next_id(board):
    card = Backend().create_card(board, "Title", "Body", "REVIEW")
    assert card.card_id == "1"  # no numeric ids yet
    assert card.column == "REVIEW"
    assert card.card_id not in board


def test_base_backend_requires_load_and_save(board):
    with pytest.raises(NotImplementedError):
        Backend().load_board()
    with pytest.raises(NotImplementedError):
        Backend().save_board(board)
