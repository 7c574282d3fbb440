"""greetd IPC client package.

Framing, the login protocol state machine, and the login orchestrator.
"""

from hyprgreet.greetd.client import (
    GreetdClient,
    LoginOutcome,
    parse_session_command,
    resolve_socket_path,
)
from hyprgreet.greetd.transport import Connection, open_connection

__all__ = [
    "GreetdClient",
    "LoginOutcome",
    "parse_session_command",
    "resolve_socket_path",
    "Connection",
    "open_connection",
]
