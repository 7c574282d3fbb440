"""Login Protocol State Machine.

This module defines the strict state machine for one greetd exchange.
A machine belongs to exactly one Connection and is discarded with it.

States:
    IDLE: Connection open, nothing sent yet
    AWAITING_AUTH_PROMPT: CreateSession sent, waiting for the prompt
    AWAITING_AUTH_RESULT: Prompt answered, waiting for success/error
    AUTHENTICATED: Daemon accepted the credentials
    SESSION_REQUESTED: StartSession sent, no reply expected
    CANCEL_REQUESTED: CancelSession sent on a cleanup connection
    DONE: Operation finished
    FAILED: Operation aborted (terminal)

Valid Transitions:
    IDLE → AWAITING_AUTH_PROMPT → AWAITING_AUTH_RESULT → AUTHENTICATED
    AUTHENTICATED → SESSION_REQUESTED → DONE
    IDLE → CANCEL_REQUESTED → DONE
    any non-terminal state → FAILED

Usage:
    from hyprgreet.greetd.state_machine import LoginState, LoginStateMachine

    sm = LoginStateMachine()
    sm.transition(LoginState.AWAITING_AUTH_PROMPT)
"""

from datetime import datetime, timezone
from enum import StrEnum

import structlog

from hyprgreet.core.exceptions import InvalidStateTransition, LoginPhase


log = structlog.get_logger()


class LoginState(StrEnum):
    """States of a single greetd exchange."""

    IDLE = "IDLE"
    AWAITING_AUTH_PROMPT = "AWAITING_AUTH_PROMPT"
    AWAITING_AUTH_RESULT = "AWAITING_AUTH_RESULT"
    AUTHENTICATED = "AUTHENTICATED"
    SESSION_REQUESTED = "SESSION_REQUESTED"
    CANCEL_REQUESTED = "CANCEL_REQUESTED"
    DONE = "DONE"
    FAILED = "FAILED"


TERMINAL_STATES: frozenset[LoginState] = frozenset([LoginState.DONE, LoginState.FAILED])

_FORWARD_TRANSITIONS = [
    (LoginState.IDLE, LoginState.AWAITING_AUTH_PROMPT),
    (LoginState.AWAITING_AUTH_PROMPT, LoginState.AWAITING_AUTH_RESULT),
    (LoginState.AWAITING_AUTH_RESULT, LoginState.AUTHENTICATED),
    (LoginState.AUTHENTICATED, LoginState.SESSION_REQUESTED),
    (LoginState.SESSION_REQUESTED, LoginState.DONE),
    (LoginState.IDLE, LoginState.CANCEL_REQUESTED),
    (LoginState.CANCEL_REQUESTED, LoginState.DONE),
]

VALID_TRANSITIONS: frozenset[tuple[LoginState, LoginState]] = frozenset(
    _FORWARD_TRANSITIONS
    + [(state, LoginState.FAILED) for state in LoginState if state not in TERMINAL_STATES]
)

# Failures before the daemon accepts the credentials are authentication
# failures, anything after is a session start failure.
_PHASES: dict[LoginState, LoginPhase] = {
    LoginState.IDLE: LoginPhase.AUTHENTICATION,
    LoginState.AWAITING_AUTH_PROMPT: LoginPhase.AUTHENTICATION,
    LoginState.AWAITING_AUTH_RESULT: LoginPhase.AUTHENTICATION,
    LoginState.CANCEL_REQUESTED: LoginPhase.AUTHENTICATION,
    LoginState.AUTHENTICATED: LoginPhase.SESSION_START,
    LoginState.SESSION_REQUESTED: LoginPhase.SESSION_START,
}


def is_valid_transition(from_state: LoginState, to_state: LoginState) -> bool:
    """Check if a state transition is valid.

    Args:
        from_state: Current state.
        to_state: Target state.

    Returns:
        True if transition is allowed, False otherwise.
    """
    return (from_state, to_state) in VALID_TRANSITIONS


def get_valid_targets(from_state: LoginState) -> set[LoginState]:
    """Get all valid target states from a given state.

    Returns:
        Set of states that can be transitioned to. Empty if terminal state.
    """
    return {to for (frm, to) in VALID_TRANSITIONS if frm == from_state}


class LoginStateMachine:
    """Strict state machine for one greetd exchange.

    Attributes:
        current_state: Current state (read-only).
        history: List of (state, timestamp) tuples (read-only copy).
        failed_from: State the machine was in when it failed, if it did.
    """

    def __init__(self) -> None:
        self._current_state = LoginState.IDLE
        self._history: list[tuple[LoginState, datetime]] = [
            (LoginState.IDLE, datetime.now(timezone.utc))
        ]
        self._failed_from: LoginState | None = None

    @property
    def current_state(self) -> LoginState:
        """Current state."""
        return self._current_state

    @property
    def history(self) -> list[tuple[LoginState, datetime]]:
        """State transition history (read-only copy)."""
        return list(self._history)

    @property
    def failed_from(self) -> LoginState | None:
        """State in which the failure happened, None unless FAILED."""
        return self._failed_from

    @property
    def is_terminal(self) -> bool:
        """Return True once DONE or FAILED."""
        return self._current_state in TERMINAL_STATES

    @property
    def phase(self) -> LoginPhase:
        """Login phase corresponding to the current (or failing) state."""
        state = self._failed_from or self._current_state
        return _PHASES.get(state, LoginPhase.SESSION_START)

    def transition(self, to_state: LoginState) -> None:
        """Transition to a new state.

        Args:
            to_state: Target state.

        Raises:
            InvalidStateTransition: If transition is not valid.
        """
        from_state = self._current_state

        if not is_valid_transition(from_state, to_state):
            raise InvalidStateTransition(
                from_state=str(from_state),
                to_state=str(to_state),
            )

        if to_state == LoginState.FAILED:
            self._failed_from = from_state

        self._current_state = to_state
        self._history.append((to_state, datetime.now(timezone.utc)))

        log.debug(
            "login_state_changed",
            from_state=str(from_state),
            to_state=str(to_state),
        )

    def fail(self) -> None:
        """Move to FAILED. No-op if already terminal."""
        if not self.is_terminal:
            self.transition(LoginState.FAILED)
