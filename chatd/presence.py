from __future__ import annotations

import asyncio
import itertools

_tokens = itertools.count(1)


class Sink:
    """
    Outbound handle for one session's relay queue.

    Any session may put() text; only the owning session drains it. The queue
    is unbounded, so put() never blocks and a reader that stops draining
    grows without limit.
    """

    def __init__(self) -> None:
        self.token = next(_tokens)
        self.queue: asyncio.Queue[str] = asyncio.Queue()

    def put(self, text: str) -> None:
        self.queue.put_nowait(text)

    async def get(self) -> str:
        return await self.queue.get()

    def pending(self) -> int:
        return self.queue.qsize()

    def __repr__(self) -> str:
        return f"<Sink token={self.token} pending={self.pending()}>"


class PresenceRegistry:
    """
    In-memory name -> Sink map for authenticated, connected sessions.

    Nothing is persisted; the registry starts empty on every process start.
    Callers serialize access (see ChatState).
    """

    def __init__(self) -> None:
        self._online: dict[str, Sink] = {}

    def set_online(self, name: str, sink: Sink) -> Sink | None:
        """Register `sink` under `name`, replacing any existing entry.

        Returns the replaced sink, if any.
        """
        previous = self._online.get(name)
        self._online[name] = sink
        return previous

    def remove_online(self, name: str, sink: Sink | None = None) -> bool:
        """Remove the entry for `name`.

        With `sink`, the entry is removed only if it still belongs to that
        sink's session, so a stale session cannot evict a newer login.
        """
        current = self._online.get(name)
        if current is None:
            return False
        if sink is not None and current.token != sink.token:
            return False
        del self._online[name]
        return True

    def lookup(self, name: str) -> Sink | None:
        return self._online.get(name)

    def names(self) -> list[str]:
        return list(self._online.keys())

    def __len__(self) -> int:
        return len(self._online)

    def __contains__(self, name: object) -> bool:
        return name in self._online
