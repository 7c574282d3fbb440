"""Custom widgets for the greeter screen."""

from __future__ import annotations

from typing import Sequence

from textual.binding import Binding
from textual.reactive import reactive
from textual.widget import Widget

from hyprgreet.core.config import SessionEntry


class SessionSelector(Widget, can_focus=True):
    """Horizontal picker over the configured sessions.

    Left/Right change the selection while focused and Enter logs in; the
    name is shown as "< name >" to hint at that.
    """

    BINDINGS = [
        Binding("left", "previous", "Previous session", show=False),
        Binding("right", "next", "Next session", show=False),
        Binding("enter", "app.login", "Login", show=False),
    ]

    selected: reactive[int] = reactive(0)

    def __init__(self, sessions: Sequence[SessionEntry], **kwargs) -> None:
        super().__init__(**kwargs)
        if not sessions:
            raise ValueError("SessionSelector needs at least one session")
        self.sessions = list(sessions)

    @property
    def current(self) -> SessionEntry:
        """Currently selected session."""
        return self.sessions[self.selected]

    def render(self) -> str:
        name = self.current.name
        return f"< {name} >" if self.has_focus else name

    def action_next(self) -> None:
        if self.selected < len(self.sessions) - 1:
            self.selected += 1

    def action_previous(self) -> None:
        if self.selected > 0:
            self.selected -= 1

    def on_focus(self) -> None:
        self.refresh()

    def on_blur(self) -> None:
        self.refresh()
