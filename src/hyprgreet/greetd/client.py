"""greetd Login Client.

This module provides the single entry point the greeter UI uses to log a
user in: authenticate against greetd, then ask it to start the chosen
session. When anything goes wrong after the first connection is
attempted, a CancelSession is sent on a second, independent connection
so the user can retry from scratch.

Usage:
    from hyprgreet.greetd.client import GreetdClient

    client = GreetdClient()
    outcome = await client.authenticate_and_start("alice", password, "Hyprland")
    if not outcome.success:
        show_error(outcome.description)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import structlog

from hyprgreet.core.exceptions import ConfigError, LoginError, LoginPhase
from hyprgreet.greetd.protocol import GreetdSession
from hyprgreet.greetd.transport import Connection, open_connection

log = structlog.get_logger()

DEFAULT_SOCKET_PATH = Path("/run/greetd.sock")
SOCKET_ENV_VAR = "GREETD_SOCK"


def resolve_socket_path(configured: Union[str, Path, None] = None) -> Path:
    """Return the greetd socket path.

    Order: $GREETD_SOCK, then the configured path, then /run/greetd.sock.
    """
    override = os.environ.get(SOCKET_ENV_VAR)
    if override:
        return Path(override)
    if configured:
        return Path(configured).expanduser()
    return DEFAULT_SOCKET_PATH


def parse_session_command(command: str) -> list[str]:
    """Split a session command on whitespace into argv.

    Raises:
        ConfigError: If the command is empty or blank.
    """
    argv = command.split() if command else []
    if not argv:
        raise ConfigError("Session command is empty", phase=LoginPhase.VALIDATION)
    return argv


@dataclass
class LoginOutcome:
    """Result of one authenticate_and_start call.

    Login failures are expected results, not crashes, so they are
    returned rather than raised.

    Attributes:
        success: Whether the session start was requested.
        error: Primary classified failure (None on success).
        cleanup_error: Failure of the best-effort CancelSession, if any.
            Never replaces the primary error.
    """

    success: bool
    error: Optional[LoginError] = None
    cleanup_error: Optional[LoginError] = None

    @property
    def phase(self) -> Optional[LoginPhase]:
        """Phase the primary error occurred in."""
        return self.error.phase if self.error else None

    @property
    def description(self) -> str:
        """Password-free text for display."""
        if self.error is None:
            return "Session started"
        return self.error.description

    @classmethod
    def ok(cls) -> LoginOutcome:
        return cls(success=True)

    @classmethod
    def failed(cls, error: LoginError, cleanup_error: Optional[LoginError] = None) -> LoginOutcome:
        return cls(success=False, error=error, cleanup_error=cleanup_error)


class GreetdClient:
    """Login orchestrator over the greetd socket.

    Exactly one login runs at a time; each attempt uses its own
    connection, and a cancellation uses another.

    Attributes:
        socket_path: Path to the greetd Unix socket.
    """

    def __init__(self, socket_path: Union[str, Path, None] = None) -> None:
        self.socket_path = resolve_socket_path(socket_path)
        self._session_connection: Optional[Connection] = None

    async def authenticate_and_start(
        self,
        username: str,
        password: str,
        session_command: str,
        env: Optional[Sequence[str]] = None,
    ) -> LoginOutcome:
        """Authenticate and request the session start.

        Args:
            username: Login name.
            password: Password used to answer the daemon's prompt.
            session_command: Command line of the session to start.
            env: Optional KEY=VALUE entries for the session environment.

        Returns:
            LoginOutcome describing success or the classified failure.
        """
        try:
            argv = parse_session_command(session_command)
        except ConfigError as e:
            log.warning("login_rejected", **e.context)
            return LoginOutcome.failed(e)

        try:
            await self._authenticate_and_start(username, password, argv, env)
        except LoginError as primary:
            log.warning("login_failed", username=username, **primary.context)
            cleanup_error = await self._cancel()
            return LoginOutcome.failed(primary, cleanup_error)

        log.info("login_succeeded", username=username, program=argv[0])
        return LoginOutcome.ok()

    async def _authenticate_and_start(
        self,
        username: str,
        password: str,
        argv: list[str],
        env: Optional[Sequence[str]],
    ) -> None:
        connection = await open_connection(self.socket_path)
        try:
            session = GreetdSession(connection)
            await session.authenticate(username, password)
            await session.start_session(argv, env)
        except LoginError:
            await connection.aclose()
            raise

        # greetd now owns the terminal for the new session; leave the
        # connection open rather than closing it under the daemon.
        await self.close()
        self._session_connection = connection

    async def _cancel(self) -> Optional[LoginError]:
        """Send CancelSession on a fresh connection.

        Returns:
            The cancellation failure, or None when it succeeded.
        """
        try:
            connection = await open_connection(self.socket_path)
        except LoginError as e:
            log.warning("cancel_session_failed", **e.context)
            return e

        async with connection:
            try:
                await GreetdSession(connection).cancel()
            except LoginError as e:
                log.warning("cancel_session_failed", **e.context)
                return e
        return None

    async def close(self) -> None:
        """Release the connection kept open after a successful start."""
        if self._session_connection is not None:
            await self._session_connection.aclose()
            self._session_connection = None
