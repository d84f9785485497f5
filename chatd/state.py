from __future__ import annotations

import asyncio
import logging

from .presence import PresenceRegistry, Sink
from .stats import StatsManager
from .users import AuthResult, User, UserDirectory, UserExistsError


class ChatState:
    """
    Shared state handle passed to every session.

    The user directory and the presence registry sit behind a single lock,
    since login checks the directory and then updates presence. Sessions go
    through the methods below and never touch either structure directly.
    """

    def __init__(
        self,
        directory: UserDirectory,
        presence: PresenceRegistry | None = None,
        stats: StatsManager | None = None,
    ) -> None:
        self.directory = directory
        self.presence = presence if presence is not None else PresenceRegistry()
        self.stats = stats if stats is not None else StatsManager()
        self.log = logging.getLogger("chatd.state")
        self._lock = asyncio.Lock()

    async def register(self, name: str, password: str) -> bool:
        """Add a user and persist the directory.

        Returns False if the name is taken or the store write failed; in both
        cases the directory is unchanged.
        """
        async with self._lock:
            # The snapshot write is blocking file I/O; keep it off the event
            # loop but inside the lock.
            write = asyncio.ensure_future(
                asyncio.to_thread(self.directory.add, User(name=name, password=password))
            )
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                # The thread cannot be stopped; hold the lock until it is done.
                await asyncio.wait([write])
                if not write.cancelled():
                    write.exception()
                raise
            except UserExistsError:
                self.log.info("Registration rejected, name taken name=%r", name)
                return False
            except OSError:
                self.log.exception(
                    "Registration failed, user store write error name=%r", name
                )
                return False

        self.log.info("Registered name=%r", name)
        return True

    async def login(
        self,
        name: str,
        password: str,
        sink: Sink,
        *,
        previous: str | None = None,
    ) -> AuthResult:
        """Authenticate and, on success, route `name` to `sink`.

        `previous` is the name the session was already logged in as, if any;
        its presence entry is dropped when the session switches names.
        """
        async with self._lock:
            result = self.directory.authenticate(name, password)
            if result is not AuthResult.OK:
                return result

            if previous is not None and previous != name:
                self.presence.remove_online(previous, sink)

            replaced = self.presence.set_online(name, sink)

        if replaced is not None and replaced.token != sink.token:
            self.stats.inc("superseded")
            self.log.info(
                "Login superseded earlier session name=%r old_token=%s new_token=%s",
                name,
                replaced.token,
                sink.token,
            )
        return result

    async def logout(self, name: str, sink: Sink) -> bool:
        """Drop `name` from presence if it still routes to `sink`."""
        async with self._lock:
            return self.presence.remove_online(name, sink)

    async def route(self, recipient: str) -> Sink | None:
        async with self._lock:
            return self.presence.lookup(recipient)

    def user_count(self) -> int:
        return len(self.directory)

    def online_count(self) -> int:
        return len(self.presence)
