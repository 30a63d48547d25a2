"""
Board model: cards, columns, and the board that owns them.

The board keeps one authoritative map of card_id -> Card. Columns hold
ordered lists of card ids, never card objects, so a card can only be "in"
the board once and the flat card list is always derived from the columns:

    Board._cards   {card_id: Card}      ownership, lookup by id
    Column.card_ids [card_id, ...]      display order, top to bottom

Card.column mirrors the name of the column that lists the card. Every
mutation in this module keeps the two in step.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

ARCHIVE_COLUMN = "ARCHIVE"
DEFAULT_COLUMNS = ["BACKLOG", "TODO", "PROGRESS", "REVIEW", "DONE", ARCHIVE_COLUMN]


def utc_now() -> datetime:
    """Timezone-aware current time (UTC)."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Accept a datetime, an ISO-8601 string, or nothing.

    YAML loaders hand back datetime objects for unquoted timestamps and
    strings for quoted ones; both end up timezone-aware. Missing values
    default to now. Raises ValueError for unparseable strings.
    """
    if value is None or value == "":
        return utc_now()
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass(eq=False)
class Card:
    """A single work item.

    eq=False keeps identity semantics: two cards with equal fields are
    still different cards.
    """

    card_id: str
    title: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    assignee: str = ""
    due_date: str = ""
    column: str = ""
    url: str = ""
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)

    def touch(self, when: Optional[datetime] = None) -> None:
        """Stamp the last-modified time."""
        self.modified_at = when or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.card_id,
            "title": self.title,
            "description": self.description,
            "column": self.column,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
        }
        # Optional fields only when set, keeps board files short
        if self.tags:
            data["tags"] = list(self.tags)
        if self.assignee:
            data["assignee"] = self.assignee
        if self.due_date:
            data["due_date"] = self.due_date
        if self.url:
            data["url"] = self.url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Card":
        """Deserialize from a board-file mapping. Raises ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"card entry must be a mapping, got {type(data).__name__}")
        card_id = data.get("id", data.get("card_id"))
        if card_id is None or str(card_id) == "":
            raise ValueError(f"card without id: {data!r}")

        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]

        due = data.get("due_date") or ""
        if isinstance(due, (date, datetime)):
            due = due.isoformat()

        return cls(
            card_id=str(card_id),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            tags=[str(t) for t in tags],
            assignee=str(data.get("assignee") or ""),
            due_date=str(due),
            column=str(data.get("column") or ""),
            url=str(data.get("url") or ""),
            created_at=parse_timestamp(data.get("created_at")),
            modified_at=parse_timestamp(data.get("modified_at")),
        )


@dataclass
class Column:
    """A named lane holding card ids in display order."""

    name: str
    card_ids: List[str] = field(default_factory=list)


class Board:
    """All columns and cards of one project."""

    def __init__(
        self,
        name: str,
        description: str = "",
        columns: Optional[List[str]] = None,
        url: str = "",
        created_at: Optional[datetime] = None,
        modified_at: Optional[datetime] = None,
    ):
        names = list(columns) if columns else list(DEFAULT_COLUMNS)
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate column names: {names}")
        self.name = name
        self.description = description
        self.url = url
        self.columns: List[Column] = [Column(n) for n in names]
        self.created_at = created_at or utc_now()
        self.modified_at = modified_at or utc_now()
        self._cards: Dict[str, Card] = {}

    # ── queries ────────────────────────────────────────────────────────────

    @property
    def cards(self) -> List[Card]:
        """Flat card list in column order, then position within column."""
        return [self._cards[cid] for col in self.columns for cid in col.card_ids]

    def get_card(self, card_id: str) -> Optional[Card]:
        return self._cards.get(card_id)

    def get_column(self, name: str) -> Optional[Column]:
        index = self.column_index(name)
        return self.columns[index] if index >= 0 else None

    def column_index(self, name: str) -> int:
        """Index of the named column in board order, or -1."""
        for i, col in enumerate(self.columns):
            if col.name == name:
                return i
        return -1

    def cards_in(self, column_name: str) -> List[Card]:
        col = self.get_column(column_name)
        if col is None:
            return []
        return [self._cards[cid] for cid in col.card_ids]

    def visible_columns(self, show_archive: bool = False) -> List[Column]:
        """Columns on screen. The archive lane is hidden unless toggled on.

        The returned list is a filtered view; the Column objects are the
        board's own.
        """
        if show_archive:
            return list(self.columns)
        return [col for col in self.columns if col.name != ARCHIVE_COLUMN]

    def next_card_id(self) -> str:
        """Next numeric id (max numeric id + 1). Non-numeric ids are ignored."""
        highest = 0
        for card_id in self._cards:
            try:
                highest = max(highest, int(card_id))
            except ValueError:
                continue
        return str(highest + 1)

    def __contains__(self, card_id: str) -> bool:
        return card_id in self._cards

    # ── mutation ───────────────────────────────────────────────────────────

    def add_card(self, card: Card, column_name: Optional[str] = None,
                 index: Optional[int] = None) -> int:
        """Insert a card into a column (default: the card's own column).

        Returns the card's index in that column. Raises ValueError for a
        duplicate id or unknown column.
        """
        if card.card_id in self._cards:
            raise ValueError(f"duplicate card id: {card.card_id}")
        target = column_name or card.column
        col = self.get_column(target)
        if col is None:
            raise ValueError(f"unknown column: {target!r}")
        self._cards[card.card_id] = card
        card.column = col.name
        return self._insert(col, card.card_id, index)

    def remove_card(self, card_id: str) -> Optional[Card]:
        """Detach a card from its column and the board."""
        card = self._cards.pop(card_id, None)
        if card is None:
            return None
        holder = self._column_holding(card_id)
        if holder is not None:
            holder.card_ids.remove(card_id)
        return card

    def relocate(self, card_id: str, column_name: str, index: int) -> Optional[int]:
        """Move a card to `index` of `column_name` in one step.

        `index` is interpreted against the destination list after the card
        has been removed from its old position; past-the-end appends.
        Returns the final index, or None if the card or column is unknown.
        """
        card = self._cards.get(card_id)
        dest = self.get_column(column_name)
        if card is None or dest is None:
            return None
        holder = self._column_holding(card_id)
        if holder is not None:
            holder.card_ids.remove(card_id)
        final = self._insert(dest, card_id, index)
        card.column = dest.name
        return final

    @staticmethod
    def _insert(col: Column, card_id: str, index: Optional[int]) -> int:
        if index is None or index >= len(col.card_ids):
            col.card_ids.append(card_id)
            return len(col.card_ids) - 1
        index = max(0, index)
        col.card_ids.insert(index, card_id)
        return index

    def _column_holding(self, card_id: str) -> Optional[Column]:
        card = self._cards.get(card_id)
        if card is not None:
            col = self.get_column(card.column)
            if col is not None and card_id in col.card_ids:
                return col
        for col in self.columns:
            if card_id in col.card_ids:
                return col
        return None

    # ── invariants ─────────────────────────────────────────────────────────

    def invariant_violations(self) -> List[str]:
        """Every broken board invariant, as human-readable strings."""
        problems: List[str] = []
        seen: Dict[str, str] = {}
        for col in self.columns:
            for cid in col.card_ids:
                if cid in seen:
                    problems.append(f"card {cid} listed in {seen[cid]} and {col.name}")
                    continue
                seen[cid] = col.name
                card = self._cards.get(cid)
                if card is None:
                    problems.append(f"column {col.name} lists unknown card {cid}")
                elif card.column != col.name:
                    problems.append(
                        f"card {cid} says column {card.column!r} but is in {col.name}"
                    )
        for cid in self._cards:
            if cid not in seen:
                problems.append(f"card {cid} is in no column")
        return problems

    # ── serialization ──────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "columns": [{"name": col.name} for col in self.columns],
            "cards": [card.to_dict() for card in self.cards],
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
        }
        if self.description:
            data["description"] = self.description
        if self.url:
            data["url"] = self.url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Board":
        """Build a board from a board-file mapping. Raises ValueError if malformed.

        Cards are placed in file order. A card naming an unknown column is
        moved to the first column.
        """
        if not isinstance(data, dict):
            raise ValueError("board file must contain a mapping")

        raw_columns = data.get("columns") or []
        if not isinstance(raw_columns, list):
            raise ValueError("'columns' must be a list")
        names: List[str] = []
        for entry in raw_columns:
            name = entry.get("name") if isinstance(entry, dict) else entry
            if not name:
                raise ValueError(f"column without name: {entry!r}")
            names.append(str(name))

        board = cls(
            name=str(data.get("name") or "Untitled"),
            description=str(data.get("description") or ""),
            columns=names or None,
            url=str(data.get("url") or ""),
            created_at=parse_timestamp(data.get("created_at")),
            modified_at=parse_timestamp(data.get("modified_at")),
        )

        raw_cards = data.get("cards") or []
        if not isinstance(raw_cards, list):
            raise ValueError("'cards' must be a list")
        fallback = board.columns[0].name
        for raw in raw_cards:
            card = Card.from_dict(raw)
            if board.get_column(card.column) is None:
                logger.warning(
                    f"Card {card.card_id} names unknown column {card.column!r}; "
                    f"placing it in {fallback}"
                )
                card.column = fallback
            board.add_card(card)
        return board


def default_board() -> Board:
    """Sample board written when no project exists yet."""
    now = utc_now()
    board = Board(
        name="My Project",
        description="A sample kanban board",
        created_at=now - timedelta(days=20),
        modified_at=now,
    )
    samples = [
        ("0", "New feature idea", "Consider adding a dark mode.", ["enhancement"], "", "", "BACKLOG", 20, 15),
        ("1", "Fix login flow", "OAuth token refresh fails with 401.", ["bug", "p1"], "@alice", "2025-01-15", "TODO", 10, 1),
        ("5", "Write tests", "Unit tests for the authentication module.", ["test"], "@alice", "2025-01-22", "TODO", 9, 2),
        ("2", "Add OAuth support", "OAuth 2.0 flow for Google and GitHub.", ["feature"], "@bob", "2025-01-20", "PROGRESS", 8, 1),
        ("3", "Review PR #42", "Review the authentication refactor.", ["code-review"], "@charlie", "2025-01-18", "REVIEW", 5, 1),
        ("4", "Setup database", "Configure PostgreSQL and run migrations.", ["infra"], "@dave", "", "DONE", 15, 10),
    ]
    for card_id, title, desc, tags, assignee, due, column, created, modified in samples:
        board.add_card(Card(
            card_id=card_id,
            title=title,
            description=desc,
            tags=tags,
            assignee=assignee,
            due_date=due,
            column=column,
            created_at=now - timedelta(days=created),
            modified_at=now - timedelta(days=modified),
        ))
    return board
