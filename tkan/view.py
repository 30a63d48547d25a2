"""
View state: what the user is looking at.

Kept apart from the Board (persistent data) and from the gesture
Interaction (ephemeral pointer state). Column indices here are indices into
the *visible* column list, which changes when the archive lane is toggled.
"""
from dataclasses import dataclass

from .geometry import Layout


@dataclass
class ViewState:
    selected_column: int = 0
    selected_card: int = 0
    show_archive: bool = False
    show_details: bool = True
    width: int = 0
    height: int = 0

    def select(self, column: int, card: int) -> None:
        self.selected_column = column
        self.selected_card = card

    @property
    def layout(self) -> Layout:
        return Layout(width=self.width, height=self.height, show_details=self.show_details)
