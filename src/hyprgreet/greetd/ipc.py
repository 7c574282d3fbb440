"""greetd IPC Message Schema.

This module defines the greetd wire protocol as dataclasses and the
codec between those dataclasses and framed bytes.

Message Format:
- Framing: 4-byte native-endian unsigned length prefix, then payload
- Serialization: JSON object with a "type" tag
- Encoding: UTF-8
- No magic number, no version field, no pipelining

Requests (greeter → daemon):
    create_session, post_auth_message_response, start_session, cancel_session

Responses (daemon → greeter):
    auth_message, success, error

Usage:
    from hyprgreet.greetd.ipc import CreateSession, encode_frame, decode_response

    wire_data = encode_frame(CreateSession(username="alice"))
    response = decode_response(payload_bytes)
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar, Optional, Union

from hyprgreet.core.exceptions import ProtocolError


MAX_MESSAGE_SIZE = 1024 * 1024  # 1MiB cap on declared payload length

# Native byte order, standard 4-byte size
LENGTH_PREFIX = struct.Struct("=I")
HEADER_SIZE = LENGTH_PREFIX.size


class AuthMessageType(StrEnum):
    """Kinds of prompt the daemon can send during authentication."""

    SECRET = "secret"
    SECRET_VISIBLE = "secret_visible"
    INFORMATIONAL = "informational"
    ERROR_NOTICE = "error_notice"

    @property
    def expects_response(self) -> bool:
        """Return True for prompts this greeter answers with the password."""
        return self in (AuthMessageType.SECRET, AuthMessageType.SECRET_VISIBLE)


class ErrorType(StrEnum):
    """Error classifications used by greetd."""

    AUTH_ERROR = "auth_error"
    ERROR = "error"


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class CreateSession:
    """Start a login for the given user."""

    TYPE: ClassVar[str] = "create_session"

    username: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TYPE, "username": self.username}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreateSession:
        return cls(username=_require_str(data, "username"))


@dataclass(frozen=True)
class PostAuthMessageResponse:
    """Answer to the daemon's last prompt.

    The response is excluded from repr so it never reaches logs or
    tracebacks.
    """

    TYPE: ClassVar[str] = "post_auth_message_response"

    response: Optional[str] = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TYPE, "response": self.response}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PostAuthMessageResponse:
        response = data.get("response")
        if response is not None and not isinstance(response, str):
            raise ProtocolError("field 'response' must be a string or null")
        return cls(response=response)


@dataclass(frozen=True)
class StartSession:
    """Ask the daemon to start the authenticated session.

    Attributes:
        cmd: Program name followed by its arguments.
        env: Extra environment entries as KEY=VALUE strings.
    """

    TYPE: ClassVar[str] = "start_session"

    cmd: list[str]
    env: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TYPE, "cmd": list(self.cmd), "env": list(self.env)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StartSession:
        return cls(
            cmd=_require_str_list(data, "cmd"),
            env=_require_str_list(data, "env") if "env" in data else [],
        )


@dataclass(frozen=True)
class CancelSession:
    """Abort the current login and release daemon-side session state."""

    TYPE: ClassVar[str] = "cancel_session"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TYPE}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CancelSession:
        return cls()


# =============================================================================
# Responses
# =============================================================================


@dataclass(frozen=True)
class AuthMessage:
    """Prompt from the daemon.

    Attributes:
        auth_message_type: Kind of prompt.
        message: Prompt text to show (e.g. "Password:").
    """

    TYPE: ClassVar[str] = "auth_message"

    auth_message_type: AuthMessageType
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.TYPE,
            "auth_message_type": str(self.auth_message_type),
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthMessage:
        raw_kind = _require_str(data, "auth_message_type")
        try:
            kind = AuthMessageType(raw_kind)
        except ValueError:
            raise ProtocolError(f"unknown auth_message_type '{raw_kind}'") from None
        return cls(auth_message_type=kind, message=_require_str(data, "message"))


@dataclass(frozen=True)
class Success:
    """The previous request succeeded."""

    TYPE: ClassVar[str] = "success"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TYPE}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Success:
        return cls()


@dataclass(frozen=True)
class Error:
    """The previous request failed.

    Attributes:
        error_type: 'auth_error' or 'error'; unknown values are kept as-is.
        description: Daemon-supplied explanation.
    """

    TYPE: ClassVar[str] = "error"

    error_type: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.TYPE,
            "error_type": self.error_type,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Error:
        return cls(
            error_type=_require_str(data, "error_type"),
            description=_require_str(data, "description"),
        )


Request = Union[CreateSession, PostAuthMessageResponse, StartSession, CancelSession]
Response = Union[AuthMessage, Success, Error]
Message = Union[Request, Response]

REQUEST_TYPES: dict[str, type] = {
    cls.TYPE: cls
    for cls in (CreateSession, PostAuthMessageResponse, StartSession, CancelSession)
}
RESPONSE_TYPES: dict[str, type] = {
    cls.TYPE: cls for cls in (AuthMessage, Success, Error)
}
MESSAGE_TYPES: dict[str, type] = {**REQUEST_TYPES, **RESPONSE_TYPES}


# =============================================================================
# Field validation helpers
# =============================================================================


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ProtocolError(f"field '{key}' must be a string")
    return value


def _require_str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ProtocolError(f"field '{key}' must be a list of strings")
    return list(value)


# =============================================================================
# Codec
# =============================================================================


def encode_message(msg: Message) -> bytes:
    """Encode a message to its JSON payload (no length prefix).

    Args:
        msg: Any request or response dataclass.

    Returns:
        UTF-8 encoded JSON object bytes.
    """
    return json.dumps(msg.to_dict()).encode("utf-8")


def encode_frame(msg: Message) -> bytes:
    """Encode a message to wire format (length prefix + payload).

    Raises:
        ProtocolError: If the payload would exceed MAX_MESSAGE_SIZE.
    """
    payload = encode_message(msg)
    if len(payload) > MAX_MESSAGE_SIZE:
        raise ProtocolError(
            f"outbound message of {len(payload)} bytes exceeds limit of "
            f"{MAX_MESSAGE_SIZE} bytes"
        )
    return LENGTH_PREFIX.pack(len(payload)) + payload


def decode_length(header: bytes) -> int:
    """Decode and bound-check a length prefix.

    Raises:
        ProtocolError: If the header is malformed or declares more than
            MAX_MESSAGE_SIZE bytes.
    """
    if len(header) != HEADER_SIZE:
        raise ProtocolError(f"length prefix must be {HEADER_SIZE} bytes")
    (length,) = LENGTH_PREFIX.unpack(header)
    if length > MAX_MESSAGE_SIZE:
        raise ProtocolError(
            f"declared message size {length} exceeds limit of "
            f"{MAX_MESSAGE_SIZE} bytes"
        )
    return length


def _decode(data: bytes, registry: dict[str, type]) -> Message:
    try:
        parsed = json.loads(data.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(f"failed to decode message payload: {e}") from e

    if not isinstance(parsed, dict):
        raise ProtocolError("message payload must be a JSON object")

    tag = parsed.get("type")
    cls = registry.get(tag) if isinstance(tag, str) else None
    if cls is None:
        raise ProtocolError(f"unrecognized message type {tag!r}")

    return cls.from_dict(parsed)


def decode_message(data: bytes) -> Message:
    """Decode a payload of either direction.

    Args:
        data: UTF-8 JSON payload without the length prefix.

    Returns:
        The matching request or response dataclass.

    Raises:
        ProtocolError: If the payload is malformed or its tag is unknown.
    """
    return _decode(data, MESSAGE_TYPES)


def decode_response(data: bytes) -> Response:
    """Decode a payload received from the daemon.

    Request tags are rejected: the daemon never sends them.

    Raises:
        ProtocolError: If the payload is malformed or not a response.
    """
    return _decode(data, RESPONSE_TYPES)  # type: ignore[return-value]
