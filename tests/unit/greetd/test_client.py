"""Unit tests for GreetdClient, the login orchestrator.

Tests cover:
- Happy path: CreateSession, PostAuthMessageResponse, StartSession
- Blank session commands rejected before any I/O
- Rejected credentials followed by CancelSession on a second connection
- Unexpected prompts fail closed
- Oversized frames fail immediately
- Cleanup failures never mask the primary error
- Socket path resolution and argv derivation
"""

from __future__ import annotations

import asyncio
import json
import struct
from pathlib import Path
from unittest.mock import patch

import pytest

from hyprgreet.core import log as log_module
from hyprgreet.core.config import LoggingConfig
from hyprgreet.core.exceptions import (
    AuthError,
    ConfigError,
    DaemonIOError,
    DaemonNotRunningError,
    LoginPhase,
    ProtocolError,
)
from hyprgreet.core.log import configure_logging
from hyprgreet.greetd.client import (
    DEFAULT_SOCKET_PATH,
    GreetdClient,
    LoginOutcome,
    parse_session_command,
    resolve_socket_path,
)

AUTH_ERROR = {"type": "error", "error_type": "auth_error", "description": "invalid credentials"}


class TestParseSessionCommand:
    """Tests for parse_session_command()."""

    def test_single_word(self) -> None:
        assert parse_session_command("Hyprland") == ["Hyprland"]

    def test_splits_on_any_whitespace(self) -> None:
        assert parse_session_command("  sway\t--unsupported-gpu \n -d ") == [
            "sway",
            "--unsupported-gpu",
            "-d",
        ]

    @pytest.mark.parametrize("command", ["", "   ", "\t\n"])
    def test_blank_rejected(self, command: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            parse_session_command(command)
        assert exc_info.value.phase == LoginPhase.VALIDATION


class TestResolveSocketPath:
    """Tests for resolve_socket_path()."""

    def test_default(self) -> None:
        assert resolve_socket_path() == DEFAULT_SOCKET_PATH
        assert DEFAULT_SOCKET_PATH == Path("/run/greetd.sock")

    def test_configured(self) -> None:
        assert resolve_socket_path("/tmp/g.sock") == Path("/tmp/g.sock")

    def test_env_override_wins(self, monkeypatch) -> None:
        monkeypatch.setenv("GREETD_SOCK", "/run/greetd-1.sock")
        assert resolve_socket_path("/tmp/g.sock") == Path("/run/greetd-1.sock")


class TestAuthenticateAndStart:
    """Tests for GreetdClient.authenticate_and_start()."""

    @pytest.mark.asyncio
    async def test_success(self, fake_greetd) -> None:
        client = GreetdClient(fake_greetd.socket_path)
        try:
            outcome = await client.authenticate_and_start("alice", "hunter2", "sway -d")
            await fake_greetd.wait_for_requests(3)
        finally:
            await client.close()

        assert outcome.success is True
        assert outcome.error is None
        assert outcome.phase is None
        assert fake_greetd.request_types == [
            ["create_session", "post_auth_message_response", "start_session"]
        ]
        assert fake_greetd.connections[0][2] == {
            "type": "start_session",
            "cmd": ["sway", "-d"],
            "env": [],
        }

    @pytest.mark.asyncio
    async def test_success_leaves_connection_open(self, fake_greetd) -> None:
        client = GreetdClient(fake_greetd.socket_path)
        outcome = await client.authenticate_and_start("alice", "hunter2", "Hyprland")
        try:
            assert outcome.success
            assert client._session_connection is not None
            assert client._session_connection.closed is False
        finally:
            await client.close()
        assert client._session_connection is None

    @pytest.mark.asyncio
    async def test_second_success_releases_previous_connection(self, fake_greetd) -> None:
        client = GreetdClient(fake_greetd.socket_path)
        try:
            await client.authenticate_and_start("alice", "hunter2", "Hyprland")
            first = client._session_connection
            await client.authenticate_and_start("bob", "hunter3", "sway")
            second = client._session_connection
        finally:
            await client.close()

        assert first is not None and second is not None
        assert first is not second
        assert first.closed is True
        assert second.closed is True

    @pytest.mark.asyncio
    async def test_env_forwarded(self, fake_greetd) -> None:
        client = GreetdClient(fake_greetd.socket_path)
        try:
            await client.authenticate_and_start(
                "alice", "hunter2", "Hyprland", env=["XKB_DEFAULT_LAYOUT=fr"]
            )
            await fake_greetd.wait_for_requests(3)
        finally:
            await client.close()
        assert fake_greetd.connections[0][2]["env"] == ["XKB_DEFAULT_LAYOUT=fr"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["", "    "])
    async def test_blank_command_no_io(self, fake_greetd, command: str) -> None:
        client = GreetdClient(fake_greetd.socket_path)
        with patch("hyprgreet.greetd.client.open_connection") as mock_open:
            outcome = await client.authenticate_and_start("alice", "hunter2", command)

        assert outcome.success is False
        assert isinstance(outcome.error, ConfigError)
        assert outcome.phase == LoginPhase.VALIDATION
        mock_open.assert_not_called()
        assert fake_greetd.connections == []

    @pytest.mark.asyncio
    async def test_rejected_credentials_cancel_on_second_connection(self, fake_greetd) -> None:
        fake_greetd.replies["post_auth_message_response"] = AUTH_ERROR
        client = GreetdClient(fake_greetd.socket_path)

        outcome = await client.authenticate_and_start("alice", "wrong", "Hyprland")

        assert outcome.success is False
        assert isinstance(outcome.error, AuthError)
        assert "invalid credentials" in outcome.description
        assert outcome.phase == LoginPhase.AUTHENTICATION
        assert outcome.cleanup_error is None
        assert fake_greetd.request_types == [
            ["create_session", "post_auth_message_response"],
            ["cancel_session"],
        ]

    @pytest.mark.asyncio
    async def test_informational_prompt_is_protocol_error(self, fake_greetd) -> None:
        fake_greetd.replies["create_session"] = {
            "type": "auth_message",
            "auth_message_type": "informational",
            "message": "Welcome!",
        }
        client = GreetdClient(fake_greetd.socket_path)

        outcome = await asyncio.wait_for(
            client.authenticate_and_start("alice", "hunter2", "Hyprland"),
            timeout=2.0,
        )

        assert isinstance(outcome.error, ProtocolError)
        # The password was never offered to the daemon
        assert fake_greetd.request_types[0] == ["create_session"]
        assert fake_greetd.request_types[1] == ["cancel_session"]

    @pytest.mark.asyncio
    async def test_oversized_frame_is_protocol_error(self, fake_greetd) -> None:
        # Header declares 10MiB, no payload follows
        fake_greetd.replies["create_session"] = struct.pack("=I", 10 * 1024 * 1024)
        client = GreetdClient(fake_greetd.socket_path)

        outcome = await asyncio.wait_for(
            client.authenticate_and_start("alice", "hunter2", "Hyprland"),
            timeout=2.0,
        )

        assert isinstance(outcome.error, ProtocolError)
        assert "exceeds limit" in outcome.description

    @pytest.mark.asyncio
    async def test_daemon_not_running(self, tmp_path: Path) -> None:
        client = GreetdClient(tmp_path / "missing.sock")

        outcome = await client.authenticate_and_start("alice", "hunter2", "Hyprland")

        assert isinstance(outcome.error, DaemonNotRunningError)
        assert outcome.phase == LoginPhase.TRANSPORT
        # The cleanup attempt failed too but did not replace the primary error
        assert isinstance(outcome.cleanup_error, DaemonNotRunningError)
        assert outcome.cleanup_error is not outcome.error

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_mask_primary_error(self, fake_greetd) -> None:
        fake_greetd.replies["post_auth_message_response"] = AUTH_ERROR
        fake_greetd.replies["cancel_session"] = {
            "type": "error",
            "error_type": "error",
            "description": "nothing to cancel",
        }
        client = GreetdClient(fake_greetd.socket_path)

        outcome = await client.authenticate_and_start("alice", "wrong", "Hyprland")

        assert isinstance(outcome.error, AuthError)
        assert outcome.error.error_type == "auth_error"
        assert isinstance(outcome.cleanup_error, AuthError)
        assert "nothing to cancel" in outcome.cleanup_error.description
        assert "invalid credentials" in outcome.description

    @pytest.mark.asyncio
    async def test_start_failure_triggers_cancel(self, fake_greetd) -> None:
        client = GreetdClient(fake_greetd.socket_path)

        with patch(
            "hyprgreet.greetd.protocol.GreetdSession.start_session",
            side_effect=DaemonIOError("Failed to send start_session: Broken pipe"),
        ):
            outcome = await client.authenticate_and_start("alice", "hunter2", "Hyprland")

        assert outcome.success is False
        assert isinstance(outcome.error, DaemonIOError)
        assert fake_greetd.request_types[-1] == ["cancel_session"]

    @pytest.mark.asyncio
    async def test_reply_to_start_session_not_required(self, fake_greetd) -> None:
        fake_greetd.replies["start_session"] = {"type": "success"}
        client = GreetdClient(fake_greetd.socket_path)
        try:
            outcome = await client.authenticate_and_start("alice", "hunter2", "Hyprland")
        finally:
            await client.close()
        assert outcome.success is True

    @pytest.mark.asyncio
    async def test_each_attempt_uses_fresh_connection(self, fake_greetd) -> None:
        fake_greetd.replies["post_auth_message_response"] = AUTH_ERROR
        client = GreetdClient(fake_greetd.socket_path)

        await client.authenticate_and_start("alice", "wrong", "Hyprland")
        await client.authenticate_and_start("alice", "wrong", "Hyprland")

        assert len(fake_greetd.connections) == 4
        assert fake_greetd.request_types[2][0] == "create_session"


@pytest.mark.safety
class TestCredentialHygiene:
    """The password never leaks into outcomes."""

    @pytest.mark.asyncio
    async def test_outcome_free_of_password(self, fake_greetd) -> None:
        fake_greetd.replies["post_auth_message_response"] = AUTH_ERROR
        client = GreetdClient(fake_greetd.socket_path)

        outcome = await client.authenticate_and_start("alice", "hunter2", "Hyprland")

        assert "hunter2" not in outcome.description
        assert "hunter2" not in repr(outcome)

    @pytest.mark.asyncio
    async def test_password_absent_from_debug_log(self, fake_greetd, tmp_path: Path) -> None:
        log_path = tmp_path / "greeter.log"
        configure_logging(LoggingConfig(level="DEBUG", format="json", output=str(log_path)))
        fake_greetd.replies["post_auth_message_response"] = AUTH_ERROR
        client = GreetdClient(fake_greetd.socket_path)

        try:
            outcome = await client.authenticate_and_start("alice", "s3cret-hunter", "Hyprland")
        finally:
            log_module._log_file.close()
            log_module._log_file = None

        assert outcome.success is False
        content = log_path.read_text(encoding="utf-8")
        events = [json.loads(line)["event"] for line in content.splitlines()]
        assert "greetd_message_sent" in events
        assert "login_failed" in events
        assert "s3cret-hunter" not in content


class TestLoginOutcome:
    """Tests for LoginOutcome."""

    def test_ok(self) -> None:
        outcome = LoginOutcome.ok()
        assert outcome.success
        assert outcome.description == "Session started"

    def test_failed(self) -> None:
        error = ConfigError("Session command is empty")
        outcome = LoginOutcome.failed(error)
        assert not outcome.success
        assert outcome.description == "Session command is empty"
        assert outcome.phase == LoginPhase.VALIDATION
