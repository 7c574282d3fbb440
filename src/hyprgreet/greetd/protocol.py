"""greetd exchange driver.

GreetdSession binds a LoginStateMachine to one Connection and performs the
ordered exchange: create session, answer exactly one secret prompt,
observe the result, then either request the session start or, on a
separate connection, cancel.

Every deviation from the expected sequence fails closed: the machine
moves to FAILED and a classified LoginError is raised. Nothing is
retried.
"""

from __future__ import annotations

from typing import NoReturn, Optional, Sequence

import structlog

from hyprgreet.core.exceptions import (
    AuthError,
    DaemonIOError,
    LoginError,
    ProtocolError,
)
from hyprgreet.greetd.ipc import (
    AuthMessage,
    CancelSession,
    CreateSession,
    Error,
    PostAuthMessageResponse,
    Request,
    Response,
    StartSession,
    Success,
)
from hyprgreet.greetd.state_machine import LoginState, LoginStateMachine
from hyprgreet.greetd.transport import Connection

log = structlog.get_logger()


class GreetdSession:
    """Drives one logical operation over one Connection.

    Attributes:
        connection: The exclusively owned connection.
        state_machine: The machine tracking this exchange.
    """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self.state_machine = LoginStateMachine()

    @property
    def state(self) -> LoginState:
        """Current protocol state."""
        return self.state_machine.current_state

    async def authenticate(self, username: str, password: str) -> None:
        """Run CreateSession → prompt/response → result.

        Args:
            username: Login name.
            password: Secret used to answer the single prompt.

        Raises:
            AuthError: If the daemon rejects the user or credentials.
            ProtocolError: If the daemon deviates from the expected sequence.
            DaemonIOError: If the transport fails mid-exchange.
        """
        self._expect(LoginState.IDLE)

        await self._send(CreateSession(username=username), LoginState.AWAITING_AUTH_PROMPT)
        log.info("greetd_session_created", username=username)

        prompt = await self._receive()
        if isinstance(prompt, Error):
            self._fail_with_error(prompt)
        if not isinstance(prompt, AuthMessage):
            self._fail_unexpected(prompt)
        if not prompt.auth_message_type.expects_response:
            # Exactly one secret prompt is answered per attempt.
            self._fail(
                ProtocolError(
                    f"unsupported auth message type '{prompt.auth_message_type}'"
                )
            )

        await self._send(
            PostAuthMessageResponse(response=password),
            LoginState.AWAITING_AUTH_RESULT,
        )

        result = await self._receive()
        if isinstance(result, Error):
            self._fail_with_error(result)
        if not isinstance(result, Success):
            self._fail_unexpected(result)

        self.state_machine.transition(LoginState.AUTHENTICATED)
        log.info("greetd_authenticated", username=username)

    async def start_session(self, cmd: Sequence[str], env: Optional[Sequence[str]] = None) -> None:
        """Send StartSession. No response is awaited.

        The daemon may replace this process with the new session, so no
        reply is the expected outcome.

        Raises:
            DaemonIOError: If the request cannot be written.
        """
        self._expect(LoginState.AUTHENTICATED)
        await self._send(
            StartSession(cmd=list(cmd), env=list(env or [])),
            LoginState.SESSION_REQUESTED,
        )
        self.state_machine.transition(LoginState.DONE)
        log.info("greetd_session_start_requested", program=cmd[0])

    async def cancel(self) -> None:
        """Send CancelSession and wait for the daemon's answer.

        Raises:
            AuthError: If the daemon reports an error.
            ProtocolError: If the reply is not Success/Error.
            DaemonIOError: If the transport fails.
        """
        self._expect(LoginState.IDLE)
        await self._send(CancelSession(), LoginState.CANCEL_REQUESTED)

        reply = await self._receive()
        if isinstance(reply, Error):
            self._fail_with_error(reply)
        if not isinstance(reply, Success):
            self._fail_unexpected(reply)

        self.state_machine.transition(LoginState.DONE)
        log.info("greetd_session_cancelled")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _expect(self, state: LoginState) -> None:
        if self.state != state:
            self._fail(ProtocolError(f"operation not valid in state {self.state}"))

    async def _send(self, message: Request, next_state: LoginState) -> None:
        try:
            await self.connection.send(message)
        except LoginError as e:
            self._fail(e)
        self.state_machine.transition(next_state)

    async def _receive(self) -> Response:
        try:
            return await self.connection.receive()
        except LoginError as e:
            self._fail(e)

    def _fail_with_error(self, error: Error) -> NoReturn:
        self._fail(AuthError(error_type=error.error_type, description=error.description))

    def _fail_unexpected(self, message: Response) -> NoReturn:
        self._fail(
            ProtocolError(f"unexpected '{message.TYPE}' message in state {self.state}")
        )

    def _fail(self, error: LoginError) -> NoReturn:
        """Tag the error with the current phase, move to FAILED and raise."""
        self.state_machine.fail()
        if not isinstance(error, DaemonIOError):
            error.phase = self.state_machine.phase
        log.warning(
            "greetd_exchange_failed",
            failed_state=str(self.state_machine.failed_from),
            **error.context,
        )
        raise error
