"""hypr-greeter Exception Hierarchy.

This module defines the structured exception hierarchy for hypr-greeter.
All custom exceptions inherit from GreeterError, enabling consistent
error handling across the codebase.

Exception Categories:
- Startup/programming errors → Exceptions (ConfigurationError, InvalidStateTransition)
- Login failures → LoginError subclasses, surfaced to the UI via LoginOutcome

No exception in this module ever carries the user's password, neither in
its message nor in its context dictionary.

Usage:
    from hyprgreet.core.exceptions import AuthError, LoginPhase

    raise AuthError(
        error_type="auth_error",
        description="invalid credentials",
        phase=LoginPhase.AUTHENTICATION,
    )
"""

from enum import StrEnum
from typing import Any, Optional


class GreeterError(Exception):
    """Base exception for all hypr-greeter errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: Optional[str] = None) -> None:
        """Initialize GreeterError.

        Args:
            message: Optional custom message. Defaults to a generic message.
        """
        self.message = message or "A greeter error occurred."
        super().__init__(self.message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context dictionary for structured logging.

        Returns:
            dict: Key-value pairs of exception context.
        """
        return {}

    def __repr__(self) -> str:
        """Return debug representation."""
        return f"{self.__class__.__name__}({self.message!r})"


class ConfigurationError(GreeterError):
    """Configuration file or value is invalid.

    Raised when YAML/JSON configuration cannot be parsed or
    contains invalid values.

    Attributes:
        config_path: Path to the configuration file.
        key: The configuration key that caused the error.
    """

    def __init__(
        self,
        config_path: str,
        key: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            config_path: Path to the config file.
            key: Optional offending key.
            message: Optional custom message.
        """
        self.config_path = config_path
        self.key = key

        if message is None:
            if key:
                message = f"Invalid configuration key '{key}' in {config_path}."
            else:
                message = f"Invalid configuration in {config_path}."

        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for configuration error."""
        return {
            "config_path": self.config_path,
            "key": self.key,
        }

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return (
            f"ConfigurationError(config_path={self.config_path!r}, "
            f"key={self.key!r})"
        )


class InvalidStateTransition(GreeterError):
    """Invalid login protocol state transition attempted.

    Raised when code drives the login state machine through a
    transition its lifecycle does not allow. This signals a bug in
    the caller, not peer misbehavior (see ProtocolError).

    Attributes:
        from_state: Current state.
        to_state: Attempted target state.
    """

    def __init__(
        self,
        from_state: str,
        to_state: str,
        message: str | None = None,
    ) -> None:
        """Initialize InvalidStateTransition.

        Args:
            from_state: Current state.
            to_state: Attempted target state.
            message: Optional custom message.
        """
        self.from_state = from_state
        self.to_state = to_state

        if message is None:
            message = f"Invalid login state transition: {from_state} → {to_state}."

        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for invalid state transition."""
        return {
            "from_state": self.from_state,
            "to_state": self.to_state,
        }

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return (
            f"InvalidStateTransition(from_state={self.from_state!r}, "
            f"to_state={self.to_state!r})"
        )


# =============================================================================
# Login taxonomy
# =============================================================================


class LoginPhase(StrEnum):
    """Phase of a login attempt in which a failure occurred."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    SESSION_START = "session_start"
    TRANSPORT = "transport"


class LoginError(GreeterError):
    """Base class for every classified login failure.

    Attributes:
        phase: LoginPhase the failure occurred in.
        description: Password-free, human-readable description.
    """

    default_phase: LoginPhase = LoginPhase.AUTHENTICATION

    def __init__(
        self,
        description: Optional[str] = None,
        phase: Optional[LoginPhase] = None,
    ) -> None:
        """Initialize LoginError.

        Args:
            description: Human-readable description of the failure.
            phase: Phase of the login attempt. Defaults per subclass.
        """
        self.description = description or "Login failed."
        self.phase = phase or self.default_phase
        super().__init__(self.description)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for login errors."""
        return {
            "phase": str(self.phase),
            "error_class": self.__class__.__name__,
        }

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return (
            f"{self.__class__.__name__}(description={self.description!r}, "
            f"phase={str(self.phase)!r})"
        )


class ConfigError(LoginError):
    """Session command is empty or otherwise unusable.

    Raised before any connection to the daemon is opened.
    """

    default_phase = LoginPhase.VALIDATION


class DaemonConnectionError(LoginError):
    """Raised when the connection to the greetd socket cannot be opened."""

    default_phase = LoginPhase.TRANSPORT


class DaemonNotRunningError(DaemonConnectionError):
    """Raised when the greetd socket does not exist."""

    pass


class DaemonIOError(LoginError):
    """Transport failure in the middle of an exchange.

    Short writes, resets, and premature end-of-stream all end up here.
    The connection is unusable afterwards.
    """

    default_phase = LoginPhase.TRANSPORT


class ProtocolError(LoginError):
    """Framing violation or message not valid for the current state.

    Attributes:
        reason: Description of why the exchange was rejected.
    """

    def __init__(
        self,
        reason: str | None = None,
        phase: Optional[LoginPhase] = None,
    ) -> None:
        """Initialize ProtocolError.

        Args:
            reason: Description of failure cause.
            phase: Phase of the login attempt.
        """
        self.reason = reason
        if reason:
            description = f"greetd protocol error: {reason}"
        else:
            description = "greetd protocol error - invalid or unexpected message."
        super().__init__(description, phase)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for protocol error."""
        return {**super().context, "reason": self.reason}


class AuthError(LoginError):
    """The daemon explicitly rejected the request.

    The daemon's description is kept verbatim.

    Attributes:
        error_type: Daemon error classification ('auth_error', 'error').
        daemon_description: Description text as sent by the daemon.
    """

    def __init__(
        self,
        error_type: str,
        description: str,
        phase: Optional[LoginPhase] = None,
    ) -> None:
        """Initialize AuthError.

        Args:
            error_type: Daemon-supplied error type.
            description: Daemon-supplied description.
            phase: Phase of the login attempt.
        """
        self.error_type = error_type
        self.daemon_description = description
        if error_type == "auth_error":
            text = f"Authentication failed: {description}"
        else:
            text = f"greetd error ({error_type}): {description}"
        super().__init__(text, phase)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for auth error."""
        return {**super().context, "error_type": self.error_type}
