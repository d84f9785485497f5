from __future__ import annotations

import asyncio
import enum
import logging
from typing import TYPE_CHECKING

from websockets.exceptions import ConnectionClosed

from .commands import (
    Command,
    LoginCommand,
    QuitCommand,
    RegisterCommand,
    TextCommand,
    parse_command,
)
from .constants import (
    R_LOGGED_IN,
    R_LOGIN_FIRST,
    R_NO_SUCH_USER,
    R_NOT_ONLINE,
    R_REGISTER_ERROR,
    R_REGISTERED,
    R_UNKNOWN,
    R_WRONG_PASSWORD,
    RELAY_FORMAT,
)
from .presence import Sink
from .users import AuthResult

if TYPE_CHECKING:
    from websockets.asyncio.server import ServerConnection

    from .state import ChatState


class SessionState(enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    TERMINATED = "terminated"


class SessionHandler:
    """
    Protocol state machine for one client connection.

    This class is responsible for:
    - Parsing each inbound text frame and applying the command
    - Replying on its own connection
    - Relaying text to other sessions through their sinks
    - Draining its own sink onto the connection
    - Removing its presence entry when the connection ends
    """

    def __init__(
        self,
        chat: ChatState,
        connection: ServerConnection,
        *,
        session_id: int = 0,
    ) -> None:
        self.chat = chat
        self.stats = chat.stats
        self.connection = connection
        self.session_id = session_id
        self.log = logging.getLogger("chatd.session")

        self.sink = Sink()
        self.identity: str | None = None
        self.state = SessionState.ANONYMOUS
        self._closed = False

    @property
    def peer(self) -> str:
        addr = getattr(self.connection, "remote_address", None)
        if isinstance(addr, tuple) and len(addr) >= 2:
            return f"{addr[0]}:{addr[1]}"
        return "-"

    async def run(self) -> None:
        """Serve the connection until quit, peer close or a bad frame.

        Two waits are kept armed at all times: the next inbound frame and the
        next relayed message. Whichever completes is handled and re-armed; the
        other stays pending, so a busy source cannot starve the quiet one.
        """
        self.stats.inc("connections")
        self.log.info("Session opened session_id=%s peer=%s", self.session_id, self.peer)

        recv_task: asyncio.Task | None = None
        relay_task: asyncio.Task | None = None
        try:
            while self.state is not SessionState.TERMINATED:
                if recv_task is None:
                    recv_task = asyncio.ensure_future(self.connection.recv())
                if relay_task is None:
                    relay_task = asyncio.ensure_future(self.sink.get())

                done, _ = await asyncio.wait(
                    {recv_task, relay_task}, return_when=asyncio.FIRST_COMPLETED
                )

                if relay_task in done:
                    text = relay_task.result()
                    relay_task = None
                    await self.connection.send(text)

                if recv_task in done:
                    finished, recv_task = recv_task, None
                    await self._on_frame(finished.result())
        except ConnectionClosed as e:
            self.log.debug(
                "Connection closed session_id=%s peer=%s code=%s",
                self.session_id,
                self.peer,
                getattr(e.rcvd, "code", None),
            )
        finally:
            pending = [t for t in (recv_task, relay_task) if t is not None]
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.wait(pending)
                for t in pending:
                    # Retrieve so a recv that failed alongside a send is not
                    # reported as "never retrieved".
                    if not t.cancelled():
                        t.exception()
            await self.close()

    async def _on_frame(self, message: str | bytes) -> None:
        self.stats.inc("frames_in")

        if not isinstance(message, str):
            self.stats.inc("frames_bad")
            self.log.warning(
                "Non-text frame, ending session session_id=%s peer=%s bytes=%s",
                self.session_id,
                self.peer,
                len(message),
            )
            self.state = SessionState.TERMINATED
            return

        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                "RX session_id=%s name=%r chars=%s",
                self.session_id,
                self.identity,
                len(message),
            )

        reply = await self.handle_text(message)
        if reply is not None:
            await self.connection.send(reply)

    async def handle_text(self, text: str) -> str | None:
        """Parse and apply one protocol line, returning the reply if any."""
        command = parse_command(text)
        if command is None:
            self.stats.inc("unknown_commands")
            return R_UNKNOWN
        return await self.handle_command(command)

    async def handle_command(self, command: Command) -> str | None:
        if isinstance(command, RegisterCommand):
            return await self._handle_register(command)
        if isinstance(command, LoginCommand):
            return await self._handle_login(command)
        if isinstance(command, TextCommand):
            return await self._handle_text(command)
        if isinstance(command, QuitCommand):
            self.log.debug("Quit session_id=%s name=%r", self.session_id, self.identity)
            self.state = SessionState.TERMINATED
            return None
        raise TypeError(f"unsupported command {command!r}")

    async def _handle_register(self, cmd: RegisterCommand) -> str:
        if await self.chat.register(cmd.name, cmd.password):
            self.stats.inc("registrations")
            return R_REGISTERED
        self.stats.inc("registration_errors")
        return R_REGISTER_ERROR

    async def _handle_login(self, cmd: LoginCommand) -> str:
        result = await self.chat.login(
            cmd.name, cmd.password, self.sink, previous=self.identity
        )
        if result is AuthResult.NO_SUCH_USER:
            self.stats.inc("login_failures")
            return R_NO_SUCH_USER
        if result is AuthResult.WRONG_PASSWORD:
            self.stats.inc("login_failures")
            self.log.info(
                "Login rejected, wrong password session_id=%s name=%r",
                self.session_id,
                cmd.name,
            )
            return R_WRONG_PASSWORD

        self.identity = cmd.name
        self.state = SessionState.AUTHENTICATED
        self.stats.inc("logins")
        self.log.info(
            "Logged in session_id=%s name=%r peer=%s token=%s",
            self.session_id,
            cmd.name,
            self.peer,
            self.sink.token,
        )
        return R_LOGGED_IN

    async def _handle_text(self, cmd: TextCommand) -> str | None:
        if self.identity is None:
            self.stats.inc("not_logged_in")
            return R_LOGIN_FIRST

        target = await self.chat.route(cmd.recipient)
        if target is None:
            self.stats.inc("recipient_offline")
            return R_NOT_ONLINE

        # Fire and forget; the recipient's own loop writes it out.
        target.put(RELAY_FORMAT.format(sender=self.identity, content=cmd.content))
        self.stats.inc("msgs_relayed")
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                "Relayed from=%r to=%r token=%s",
                self.identity,
                cmd.recipient,
                target.token,
            )
        return None

    async def close(self) -> None:
        """
        Terminate the session and release its presence entry.

        Safe to call more than once; cleanup runs on the first call only.
        """
        if self._closed:
            return
        self._closed = True
        self.state = SessionState.TERMINATED
        self.stats.inc("disconnects")

        name = self.identity
        if name is None:
            self.log.info("Session closed session_id=%s peer=%s", self.session_id, self.peer)
            return

        removed = await self.chat.logout(name, self.sink)
        if removed:
            self.log.info("User %r has quit session_id=%s", name, self.session_id)
        else:
            self.log.info(
                "User %r session closed after being superseded session_id=%s",
                name,
                self.session_id,
            )
