from __future__ import annotations

import asyncio

import pytest
from websockets.exceptions import ConnectionClosedOK

from chatd.state import ChatState
from chatd.store import JsonUserStore
from chatd.users import UserDirectory


class FakeConnection:
    """In-memory stand-in for a websockets ServerConnection."""

    def __init__(self, port: int = 50000) -> None:
        self.inbound: asyncio.Queue[str | bytes | None] = asyncio.Queue()
        self.sent: list[str] = []
        self.remote_address = ("127.0.0.1", port)

    def feed(self, message: str | bytes) -> None:
        self.inbound.put_nowait(message)

    def hang_up(self) -> None:
        self.inbound.put_nowait(None)

    async def recv(self) -> str | bytes:
        item = await self.inbound.get()
        if item is None:
            raise ConnectionClosedOK(None, None)
        return item

    async def send(self, message: str) -> None:
        self.sent.append(message)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def users_file(tmp_path):
    return tmp_path / "users.json"


@pytest.fixture
def make_state(users_file):
    def _make() -> ChatState:
        return ChatState(UserDirectory.load(JsonUserStore(users_file)))

    return _make
