from __future__ import annotations

import asyncio
import itertools
import logging
import signal
from http import HTTPStatus

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.http11 import Request, Response

from .config import ChatRuntimeConfig
from .paths import default_users_path, expand_path
from .session import SessionHandler
from .state import ChatState
from .stats import StatsManager
from .store import JsonUserStore
from .users import UserDirectory


class ChatService:
    """
    WebSocket chat daemon.

    Loads the user directory, owns the shared ChatState and runs one
    SessionHandler per accepted connection.
    """

    def __init__(self, config: ChatRuntimeConfig) -> None:
        self.config = config
        self.log = logging.getLogger("chatd.hub")
        self.stats = StatsManager()

        self.chat: ChatState | None = None
        self._session_ids = itertools.count(1)
        self._shutdown: asyncio.Event | None = None

    def users_path(self) -> str:
        if self.config.users_path:
            return expand_path(str(self.config.users_path))
        return str(default_users_path())

    def start(self) -> None:
        """Load the user directory and build the shared state.

        StoreCorruptError and OSError propagate: the service must not run
        with a directory it could not read.
        """
        store = JsonUserStore(self.users_path())
        directory = UserDirectory.load(store)
        self.chat = ChatState(directory, stats=self.stats)
        self.stats.set_start_time()

    def listen(self) -> serve:
        """Create the WebSocket server; use as an async context manager."""
        if self.chat is None:
            self.start()

        ping_interval = self.config.ping_interval_s or None
        ping_timeout = self.config.ping_timeout_s or None
        return serve(
            self._handle_connection,
            self.config.host,
            self.config.port,
            process_request=self._process_request,
            ping_interval=ping_interval,
            ping_timeout=ping_timeout,
            max_size=self.config.max_frame_bytes or None,
        )

    def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Response | None:
        path = request.path.split("?", 1)[0]
        if path != self.config.ws_path:
            self.log.debug("Rejected upgrade path=%r", request.path)
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    async def _handle_connection(self, connection: ServerConnection) -> None:
        assert self.chat is not None
        session = SessionHandler(
            self.chat, connection, session_id=next(self._session_ids)
        )
        await session.run()

    def _log_listening(self, server: Server) -> None:
        addrs = ", ".join(str(sock.getsockname()) for sock in server.sockets)
        self.log.info(
            "Listening on %s path=%s users=%s",
            addrs,
            self.config.ws_path,
            self.chat.user_count() if self.chat else 0,
        )

    async def serve(self) -> None:
        """Run until stop() is called."""
        self._shutdown = asyncio.Event()
        async with self.listen() as server:
            self._log_listening(server)
            await self._shutdown.wait()
            self.log.info("Shutting down sessions=%s", self.stats.active_sessions())

        self.log.info(
            "%s",
            self.stats.format_stats(
                users=self.chat.user_count() if self.chat else 0,
                online=self.chat.online_count() if self.chat else 0,
            ),
        )

    def stop(self) -> None:
        if self._shutdown is not None:
            self._shutdown.set()

    async def _main(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except NotImplementedError:
                # Not available on Windows event loops.
                pass
        await self.serve()

    def run_forever(self) -> None:
        if self.chat is None:
            self.start()
        asyncio.run(self._main())
