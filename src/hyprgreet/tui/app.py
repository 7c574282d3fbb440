"""hypr-greeter TUI Application.

The Textual login screen: username, password, session picker. Submitting
hands the plain values to GreetdClient and waits for the single
LoginOutcome; the screen stays suspended until the attempt finishes.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import structlog
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Input, Static

from hyprgreet.core.last_user import load_last_user, save_last_user
from hyprgreet.greetd.client import GreetdClient, LoginOutcome
from hyprgreet.tui.widgets import SessionSelector

if TYPE_CHECKING:
    from hyprgreet.core.config import Settings

log = structlog.get_logger()

HELP_TEXT = "Tab: Next Field | Shift+Tab: Previous Field | ←/→: Change Session | Enter: Login"


class GreeterApp(App):
    """Login screen for greetd.

    Returns the successful LoginOutcome from run(), or None if the user
    quit.
    """

    CSS_PATH = "style.tcss"
    BINDINGS = [("ctrl+q", "quit", "Quit")]

    def __init__(
        self,
        settings: "Settings",
        client: Optional[GreetdClient] = None,
    ) -> None:
        """Initialize GreeterApp.

        Args:
            settings: Loaded settings (sessions, display and security flags).
            client: Login client. Defaults to one on the resolved socket path.
        """
        super().__init__()
        self.settings = settings
        self.client = client or GreetdClient(settings.greetd.socket_path)
        self.last_user_path = Path(settings.greetd.last_user_file)
        self.last_user = load_last_user(self.last_user_path)
        self.error_message: Optional[str] = None
        self._login_in_progress = False

    def compose(self) -> ComposeResult:
        ui = self.settings.ui
        with Vertical(id="login-box"):
            yield Static(ui.title, id="title")
            if ui.show_clock or ui.show_date:
                yield Static(self._clock_text(), id="clock")
            yield Input(
                value=self.last_user or "",
                placeholder="Username",
                id="username",
            )
            yield Input(
                placeholder="Password",
                password=self.settings.security.mask_password,
                id="password",
            )
            yield SessionSelector(self.settings.sessions, id="session")
            yield Static("", id="error")
        yield Static(HELP_TEXT, id="help")

    def on_mount(self) -> None:
        self.screen.styles.background = self.settings.ui.background
        focus_id = "#password" if self.last_user else "#username"
        self.query_one(focus_id, Input).focus()
        if self.settings.ui.show_clock or self.settings.ui.show_date:
            self.set_interval(1.0, self._refresh_clock)

    def _clock_text(self) -> str:
        ui = self.settings.ui
        now = datetime.now()
        lines = []
        if ui.show_clock:
            lines.append(now.strftime(ui.clock_format))
        if ui.show_date:
            lines.append(now.strftime(ui.date_format))
        return "\n".join(lines)

    def _refresh_clock(self) -> None:
        self.query_one("#clock", Static).update(self._clock_text())

    # -------------------------------------------------------------------------
    # Error display
    # -------------------------------------------------------------------------

    def show_error(self, message: str) -> None:
        self.error_message = message
        self.query_one("#error", Static).update(message)

    def clear_error(self) -> None:
        if self.error_message is not None:
            self.error_message = None
            self.query_one("#error", Static).update("")

    def on_input_changed(self, message: Input.Changed) -> None:
        self.clear_error()

    def on_descendant_focus(self) -> None:
        self.clear_error()

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    async def on_input_submitted(self, message: Input.Submitted) -> None:
        if message.input.id == "username":
            self.query_one("#password", Input).focus()
            return
        await self.action_login()

    async def action_login(self) -> None:
        """Run one login attempt with the current field values."""
        if self._login_in_progress:
            return

        username = self.query_one("#username", Input).value.strip()
        password_input = self.query_one("#password", Input)
        if not username or not password_input.value:
            self.show_error("Please enter username and password")
            return

        session = self.query_one("#session", SessionSelector).current
        self._login_in_progress = True
        try:
            outcome = await self.client.authenticate_and_start(
                username,
                password_input.value,
                session.command,
                env=self.settings.session_env(),
            )
        finally:
            self._login_in_progress = False

        if outcome.success:
            self._remember_user(username)
            self.exit(outcome)
            return

        if self.settings.security.clear_password_on_error:
            with password_input.prevent(Input.Changed):
                password_input.value = ""
        self.show_error(f"Login failed: {outcome.description}")

    def _remember_user(self, username: str) -> None:
        try:
            save_last_user(self.last_user_path, username)
        except OSError as e:
            log.warning("last_user_save_failed", path=str(self.last_user_path), error=str(e))


def run_greeter(settings: "Settings") -> Optional[LoginOutcome]:
    """Run the greeter until a session is started or the user quits."""
    return GreeterApp(settings).run()
