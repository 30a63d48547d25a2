"""
Textual front end.

BoardView is the only widget on the main screen: it paints render_board()
and forwards mouse and key input to the BoardSession. A press that lands on
a card captures the mouse and arms a one-shot timer tagged with the
session's gesture generation, so the hold delay can start a drag without
any motion.
"""
import logging
import time
from functools import partial
from typing import Callable, List, Optional, Tuple

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import Input, Label, OptionList, Static
from textual.widgets.option_list import Option

from .errors import LoadError
from .gesture import GestureState
from .projects import Project, relative_location
from .render import render_board
from .session import BoardSession

logger = logging.getLogger(__name__)

# Opens a project: returns a ready session or raises LoadError
ProjectLoader = Callable[[Project], BoardSession]
# Lists the GitHub projects of an owner ("@me" for the token's user); raises LoadError
GitHubLister = Callable[[str], List[Project]]


class BoardView(Widget, can_focus=True):
    """Full-screen board."""

    BINDINGS = [
        Binding("left,h", "select_left", "Left", show=False),
        Binding("right,l", "select_right", "Right", show=False),
        Binding("up,k", "select_up", "Up", show=False),
        Binding("down,j", "select_down", "Down", show=False),
        Binding("home,g", "select_first", "First column", show=False),
        Binding("end,G", "select_last", "Last column", show=False),
        Binding("shift+left,H", "move_left", "Move left", show=False),
        Binding("shift+right,L", "move_right", "Move right", show=False),
        Binding("shift+up,K", "move_up", "Move up", show=False),
        Binding("shift+down,J", "move_down", "Move down", show=False),
        Binding("tab", "toggle_details", "Details", show=False),
        Binding("a", "toggle_archive", "Archive", show=False),
        Binding("escape", "cancel_drag", "Cancel drag", show=False),
    ]

    def __init__(self, session: BoardSession, **kwargs):
        super().__init__(**kwargs)
        self.session = session

    def render(self) -> Text:
        return Text("\n").join(render_board(self.session))

    def on_resize(self, event: events.Resize) -> None:
        self.session.resize(event.size.width, event.size.height)
        self.refresh()

    # ── mouse ──────────────────────────────────────────────────────────────

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if event.button != 1:
            return
        generation = self.session.mouse_down(event.x, event.y, time.monotonic())
        if generation is not None:
            self.capture_mouse()
            self.set_timer(self.session.gesture.drag_delay, partial(self._drag_timer, generation))
        self.refresh()

    def _drag_timer(self, generation: int) -> None:
        if self.session.drag_timer(generation):
            self.refresh()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self.session.gesture.state is GestureState.IDLE:
            return
        self.session.mouse_move(event.x, event.y, time.monotonic())
        self.refresh()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        self.release_mouse()
        if self.session.gesture.state is GestureState.IDLE:
            return
        result = self.session.mouse_up(event.x, event.y, time.monotonic())
        logger.debug(f"Gesture ended: {result.outcome.value}")
        self.refresh()

    # ── keys ───────────────────────────────────────────────────────────────

    def _run(self, command: Callable[[], object]) -> None:
        command()
        self.refresh()

    def action_select_left(self) -> None:
        self._run(self.session.select_left)

    def action_select_right(self) -> None:
        self._run(self.session.select_right)

    def action_select_up(self) -> None:
        self._run(self.session.select_up)

    def action_select_down(self) -> None:
        self._run(self.session.select_down)

    def action_select_first(self) -> None:
        self._run(self.session.select_first_column)

    def action_select_last(self) -> None:
        self._run(self.session.select_last_column)

    def action_move_left(self) -> None:
        self._run(self.session.move_selected_left)

    def action_move_right(self) -> None:
        self._run(self.session.move_selected_right)

    def action_move_up(self) -> None:
        self._run(self.session.move_selected_up)

    def action_move_down(self) -> None:
        self._run(self.session.move_selected_down)

    def action_toggle_details(self) -> None:
        self._run(self.session.toggle_details)

    def action_toggle_archive(self) -> None:
        self._run(self.session.toggle_archive)

    def action_cancel_drag(self) -> None:
        self.release_mouse()
        self._run(self.session.cancel_gesture)


class CardForm(ModalScreen):
    """Title + description form. Dismisses with (title, description) or None."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    CSS = """
    CardForm {
        align: center middle;
    }
    CardForm > Vertical {
        width: 70;
        max-width: 90%;
        height: auto;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }
    CardForm .heading {
        text-style: bold;
        margin-bottom: 1;
    }
    CardForm .hint {
        color: $text-muted;
        margin-top: 1;
    }
    """

    def __init__(self, heading: str, title: str = "", description: str = ""):
        super().__init__()
        self.heading = heading
        self.initial_title = title
        self.initial_description = description

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label(self.heading, classes="heading")
            yield Input(value=self.initial_title, placeholder="Title", id="title")
            yield Input(value=self.initial_description, placeholder="Description", id="description")
            yield Label("Enter: next / save   Esc: cancel", classes="hint")

    def on_mount(self) -> None:
        self.query_one("#title", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        title = self.query_one("#title", Input)
        if not title.value.strip():
            title.focus()
            return
        if event.input.id == "title":
            self.query_one("#description", Input).focus()
            return
        self.dismiss((title.value, self.query_one("#description", Input).value))

    def action_cancel(self) -> None:
        self.dismiss(None)


HELP_LINES = [
    ("←/→ h/l", "select column"),
    ("↑/↓ k/j", "select card"),
    ("Home g / End G", "first / last column"),
    ("Shift+arrows H/J/K/L", "move the selected card"),
    ("mouse drag", "move a card (hold or drag to start, Esc cancels)"),
    ("Tab", "toggle the detail panel"),
    ("a", "show or hide the archive"),
    ("n / e / d", "new, edit, delete card"),
    ("p", "open a local or GitHub project"),
    ("q", "quit"),
]


class HelpScreen(ModalScreen):
    """Key reference."""

    BINDINGS = [Binding("escape,question_mark,q", "dismiss_help", "Close")]

    CSS = """
    HelpScreen {
        align: center middle;
    }
    HelpScreen > Static {
        width: 70;
        max-width: 90%;
        height: auto;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }
    """

    def compose(self) -> ComposeResult:
        text = Text("tkan: keys\n\n", style="bold")
        for keys, meaning in HELP_LINES:
            text.append(f"{keys:<24}", style="bold cyan")
            text.append(f"{meaning}\n")
        yield Static(text)

    def action_dismiss_help(self) -> None:
        self.dismiss(None)


PROJECT_SOURCES = [
    ("local", "Local projects"),
    ("me", "My GitHub projects"),
    ("owner", "GitHub projects of a user or organization..."),
    ("cancel", "Cancel"),
]


class SourceList(ModalScreen):
    """Where to look for projects. Dismisses with a PROJECT_SOURCES key or None."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    CSS = """
    SourceList {
        align: center middle;
    }
    SourceList > Vertical {
        width: 60;
        max-width: 90%;
        height: auto;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }
    SourceList .heading {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Open a project from", classes="heading")
            yield OptionList(*[Option(label, id=key) for key, label in PROJECT_SOURCES])

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        key = event.option.id
        self.dismiss(None if key == "cancel" else key)

    def action_cancel(self) -> None:
        self.dismiss(None)


class OwnerPrompt(ModalScreen):
    """GitHub user or organization name. Dismisses with the name or None."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    CSS = """
    OwnerPrompt {
        align: center middle;
    }
    OwnerPrompt > Vertical {
        width: 60;
        max-width: 90%;
        height: auto;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }
    OwnerPrompt .hint {
        color: $text-muted;
        margin-top: 1;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("GitHub user or organization")
            yield Input(placeholder="owner", id="owner")
            yield Label("Enter: list projects   Esc: cancel", classes="hint")

    def on_mount(self) -> None:
        self.query_one("#owner", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        owner = event.value.strip()
        if owner:
            self.dismiss(owner)

    def action_cancel(self) -> None:
        self.dismiss(None)


class ProjectList(ModalScreen):
    """Pick a project. Dismisses with the Project or None."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    CSS = """
    ProjectList {
        align: center middle;
    }
    ProjectList > Vertical {
        width: 80;
        max-width: 90%;
        height: 80%;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }
    ProjectList .heading {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    def __init__(self, projects: List[Project], base_dir: str):
        super().__init__()
        self.projects = projects
        self.base_dir = base_dir

    def compose(self) -> ComposeResult:
        options = [
            Option(f"{p.name}  ({relative_location(p, self.base_dir)})")
            for p in self.projects
        ]
        with Vertical():
            yield Label("Available projects", classes="heading")
            yield OptionList(*options)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(self.projects[event.option_index])

    def action_cancel(self) -> None:
        self.dismiss(None)


class TkanApp(App):
    """tkan board application."""

    TITLE = "tkan"

    CSS = """
    BoardView {
        width: 1fr;
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("n", "new_card", "New"),
        Binding("e", "edit_card", "Edit"),
        Binding("d", "delete_card", "Delete"),
        Binding("p", "projects", "Projects"),
        Binding("question_mark", "help", "Help"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, session: BoardSession, projects: Optional[List[Project]] = None,
                 loader: Optional[ProjectLoader] = None, base_dir: str = ".",
                 github_lister: Optional[GitHubLister] = None):
        super().__init__()
        self.session = session
        self.projects = projects or []
        self.loader = loader
        self.base_dir = base_dir
        self.github_lister = github_lister

    def compose(self) -> ComposeResult:
        yield BoardView(self.session)

    def on_mount(self) -> None:
        self.query_one(BoardView).focus()

    @property
    def board_view(self) -> BoardView:
        return self.query_one(BoardView)

    def _refresh_board(self) -> None:
        self.board_view.refresh()
        if self.session.last_error is not None:
            self.notify(str(self.session.last_error), title="Not saved", severity="error")

    # ── cards ──────────────────────────────────────────────────────────────

    def action_new_card(self) -> None:
        self.session.cancel_gesture()
        if self.session.selected_column is None:
            return
        heading = f"New card in {self.session.selected_column.name}"
        self.push_screen(CardForm(heading), self._on_new_card)

    def _on_new_card(self, result: Optional[Tuple[str, str]]) -> None:
        if result:
            self.session.create_card(*result)
        self._refresh_board()

    def action_edit_card(self) -> None:
        self.session.cancel_gesture()
        card = self.session.selected_card
        if card is None:
            return
        self.push_screen(CardForm("Edit card", card.title, card.description), self._on_edit_card)

    def _on_edit_card(self, result: Optional[Tuple[str, str]]) -> None:
        if result:
            self.session.edit_selected(*result)
        self._refresh_board()

    def action_delete_card(self) -> None:
        card = self.session.delete_selected()
        if card is not None:
            self.notify(f"Deleted {card.title!r}")
        self._refresh_board()

    def action_help(self) -> None:
        self.session.cancel_gesture()
        self.push_screen(HelpScreen())

    # ── projects ───────────────────────────────────────────────────────────

    def action_projects(self) -> None:
        self.session.cancel_gesture()
        self.push_screen(SourceList(), self._on_source)

    def _on_source(self, source: Optional[str]) -> None:
        if source == "local":
            self._show_projects(self.projects, "No local projects found")
        elif source == "me":
            self._list_github("@me")
        elif source == "owner":
            self.push_screen(OwnerPrompt(), self._on_owner)

    def _on_owner(self, owner: Optional[str]) -> None:
        if owner:
            self._list_github(owner)

    def _list_github(self, owner: str) -> None:
        if self.github_lister is None:
            self.notify("GitHub projects are not available")
            return
        try:
            projects = self.github_lister(owner)
        except LoadError as e:
            logger.error(f"Failed to list GitHub projects of {owner}: {e}")
            self.notify(str(e), title="Cannot list GitHub projects", severity="error")
            return
        self._show_projects(projects, f"No GitHub projects for {owner}")

    def _show_projects(self, projects: List[Project], empty_message: str) -> None:
        if not projects or self.loader is None:
            self.notify(empty_message)
            return
        self.push_screen(ProjectList(projects, self.base_dir), self._on_project)

    def _on_project(self, project: Optional[Project]) -> None:
        if project is None:
            return
        try:
            session = self.loader(project)
        except LoadError as e:
            logger.error(f"Failed to open project {project.path}: {e}")
            self.notify(str(e), title="Cannot open project", severity="error")
            return
        view = self.board_view
        session.resize(view.size.width, view.size.height)
        self.session = session
        view.session = session
        view.refresh()
        logger.info(f"Switched to project {project.name!r}")
