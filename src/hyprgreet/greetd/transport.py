"""Framed byte-stream connection to the greetd socket.

A Connection owns one Unix socket stream. It serves exactly one logical
operation (an authenticate+start attempt or a cancellation) and is then
discarded. It performs no retries and keeps no buffered state between
calls beyond what asyncio's stream reader holds.

Usage:
    from hyprgreet.greetd.transport import open_connection

    async with await open_connection(Path("/run/greetd.sock")) as conn:
        await conn.send(CancelSession())
        response = await conn.receive()
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import structlog

from hyprgreet.core.exceptions import (
    DaemonConnectionError,
    DaemonIOError,
    DaemonNotRunningError,
)
from hyprgreet.greetd.ipc import (
    HEADER_SIZE,
    Request,
    Response,
    decode_length,
    decode_response,
    encode_frame,
)

log = structlog.get_logger()


class Connection:
    """A single framed connection to the daemon.

    Attributes:
        socket_path: Path the connection was opened on (informational).
        closed: Whether the connection has been closed.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        socket_path: Optional[Path] = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._closed = False
        self.socket_path = socket_path

    @property
    def closed(self) -> bool:
        """Return True once the connection is closed or broken."""
        return self._closed or self._writer.is_closing()

    async def send(self, message: Request) -> None:
        """Write one framed message and flush it.

        Raises:
            DaemonIOError: If the connection is closed or the write fails.
                The connection is closed on failure.
            ProtocolError: If the message cannot be framed.
        """
        if self.closed:
            raise DaemonIOError("Connection to greetd is closed")

        frame = encode_frame(message)
        try:
            self._writer.write(frame)
            await self._writer.drain()
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            self.close()
            raise DaemonIOError(f"Failed to send {message.TYPE}: {e}") from e

        log.debug("greetd_message_sent", message_type=message.TYPE, size=len(frame))

    async def receive(self) -> Response:
        """Read exactly one framed response.

        The declared length is checked against MAX_MESSAGE_SIZE before any
        payload byte is read.

        Raises:
            DaemonIOError: If the stream ends early or the read fails.
            ProtocolError: If the frame is oversized or the payload invalid.
        """
        if self.closed:
            raise DaemonIOError("Connection to greetd is closed")

        try:
            header = await self._reader.readexactly(HEADER_SIZE)
            length = decode_length(header)
            payload = await self._reader.readexactly(length)
        except asyncio.IncompleteReadError as e:
            self.close()
            raise DaemonIOError(
                f"greetd closed the connection ({len(e.partial)} of "
                f"{e.expected} bytes read)"
            ) from e
        except (ConnectionResetError, OSError) as e:
            self.close()
            raise DaemonIOError(f"Failed to read from greetd: {e}") from e

        response = decode_response(payload)
        log.debug("greetd_message_received", message_type=response.TYPE, size=length)
        return response

    def close(self) -> None:
        """Close the underlying stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._writer.close()

    async def aclose(self) -> None:
        """Close the stream and wait for the transport to shut down."""
        self.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            log.debug("greetd_close_error", error=str(e))

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


async def open_connection(socket_path: Path) -> Connection:
    """Connect to the greetd Unix socket.

    Args:
        socket_path: Path to the greetd socket.

    Returns:
        A fresh Connection.

    Raises:
        DaemonNotRunningError: If the socket does not exist.
        DaemonConnectionError: If permission is denied or the connection
            is refused.
    """
    try:
        socket_exists = socket_path.exists()
    except OSError as e:
        raise DaemonConnectionError(f"Failed to connect to greetd: {e}") from e
    if not socket_exists:
        raise DaemonNotRunningError(
            f"greetd not running: socket '{socket_path}' not found"
        )

    try:
        reader, writer = await asyncio.open_unix_connection(str(socket_path))
    except (ConnectionRefusedError, PermissionError, OSError) as e:
        raise DaemonConnectionError(f"Failed to connect to greetd: {e}") from e

    log.info("greetd_connected", socket_path=str(socket_path))
    return Connection(reader, writer, socket_path)
