"""
hypr-greeter Test Configuration

Shared pytest fixtures, including a scriptable in-process greetd.
"""

import asyncio
import json
import struct
from pathlib import Path
from typing import Any, Callable, Optional, Union

import pytest
import pytest_asyncio
import structlog


# Configure pytest collection
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "safety: Safety-critical tests (credential handling, fail-closed)")


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog.configure() a test performed."""
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def clear_greetd_sock(monkeypatch):
    """Keep a developer's GREETD_SOCK from leaking into tests."""
    monkeypatch.delenv("GREETD_SOCK", raising=False)


# =============================================================================
# Simulated greetd
# =============================================================================

FRAME_HEADER = struct.Struct("=I")

ReplyScript = Union[None, dict[str, Any], bytes, Callable[[dict[str, Any]], Any]]


def frame(payload: Union[dict[str, Any], bytes]) -> bytes:
    """Frame a payload the way greetd does."""
    if isinstance(payload, dict):
        payload = json.dumps(payload).encode("utf-8")
    return FRAME_HEADER.pack(len(payload)) + payload


SECRET_PROMPT = {"type": "auth_message", "auth_message_type": "secret", "message": "Password:"}
SUCCESS = {"type": "success"}
AUTH_ERROR = {"type": "error", "error_type": "auth_error", "description": "invalid credentials"}


class FakeGreetd:
    """In-process greetd speaking the real wire format.

    Replies are scripted per request type. A script value of None means
    "send nothing" (greetd's behavior after start_session); bytes are
    written raw, which allows malformed frames.

    Attributes:
        connections: One list of decoded requests per accepted connection.
    """

    def __init__(self, socket_path: Path) -> None:
        self.socket_path = socket_path
        self.replies: dict[str, ReplyScript] = {
            "create_session": SECRET_PROMPT,
            "post_auth_message_response": SUCCESS,
            "start_session": None,
            "cancel_session": SUCCESS,
        }
        self.connections: list[list[dict[str, Any]]] = []
        self._server: Optional[asyncio.AbstractServer] = None
        self._writers: list[asyncio.StreamWriter] = []

    @property
    def request_types(self) -> list[list[str]]:
        """Request type sequence per connection."""
        return [[r["type"] for r in conn] for conn in self.connections]

    async def wait_for_requests(self, count: int, connection: int = 0, timeout: float = 2.0) -> None:
        """Wait until a connection has received at least count requests."""

        async def _poll() -> None:
            while (
                len(self.connections) <= connection
                or len(self.connections[connection]) < count
            ):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)

    async def start(self) -> None:
        self._server = await asyncio.start_unix_server(
            self._handle_client, path=str(self.socket_path)
        )

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._writers.append(writer)
        received: list[dict[str, Any]] = []
        self.connections.append(received)
        try:
            while True:
                header = await reader.readexactly(FRAME_HEADER.size)
                (length,) = FRAME_HEADER.unpack(header)
                request = json.loads(await reader.readexactly(length))
                received.append(request)

                reply = self.replies.get(request["type"])
                if callable(reply):
                    reply = reply(request)
                if reply is None:
                    continue
                writer.write(reply if isinstance(reply, bytes) else frame(reply))
                await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionResetError):
            pass
        finally:
            writer.close()


@pytest.fixture
def greetd_socket(tmp_path: Path) -> Path:
    """Socket path inside the test's temp directory."""
    return tmp_path / "greetd.sock"


@pytest_asyncio.fixture
async def fake_greetd(greetd_socket: Path):
    """Running FakeGreetd with a happy-path script."""
    daemon = FakeGreetd(greetd_socket)
    await daemon.start()
    yield daemon
    await daemon.stop()


@pytest.fixture
def config_file(tmp_path: Path) -> Callable[[str], Path]:
    """Factory writing a config file with the given contents."""

    def _write(content: str, name: str = "config.yaml") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
