"""hypr-greeter TUI Package.

This package provides the Textual-based login screen.
"""

from hyprgreet.tui.app import GreeterApp, run_greeter
from hyprgreet.tui.widgets import SessionSelector

__all__ = [
    "GreeterApp",
    "run_greeter",
    "SessionSelector",
]
