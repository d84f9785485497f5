"""Statistics tracking and reporting for the chat service."""

from __future__ import annotations

import time


class StatsManager:
    """
    Lifetime counters for the chat service.

    Tracks:
    - Connections opened/closed
    - Frames received and frames rejected
    - Registrations and logins, with their failures
    - Logins that superseded an existing session
    - Messages relayed and relays to offline recipients
    - Text attempts before login and unknown commands

    Counters are only touched from the event loop thread, so no lock is
    needed.
    """

    def __init__(self) -> None:
        self.started_monotonic: float | None = None

        self._counters: dict[str, int] = {
            "connections": 0,
            "disconnects": 0,
            "frames_in": 0,
            "frames_bad": 0,
            "registrations": 0,
            "registration_errors": 0,
            "logins": 0,
            "login_failures": 0,
            "superseded": 0,
            "msgs_relayed": 0,
            "recipient_offline": 0,
            "not_logged_in": 0,
            "unknown_commands": 0,
        }

    def set_start_time(self) -> None:
        """Set the start time for uptime calculations."""
        self.started_monotonic = time.monotonic()

    def inc(self, key: str, delta: int = 1) -> None:
        self._counters[key] = int(self._counters.get(key, 0)) + int(delta)

    def get(self, key: str) -> int:
        return int(self._counters.get(key, 0))

    def active_sessions(self) -> int:
        return self.get("connections") - self.get("disconnects")

    def snapshot(self) -> dict[str, int]:
        return dict(self._counters)

    def uptime_s(self) -> float:
        if self.started_monotonic is None:
            return 0.0
        return time.monotonic() - self.started_monotonic

    def format_stats(self, *, users: int = 0, online: int = 0) -> str:
        """Format current statistics as a single log line."""
        from . import __version__

        c = self.snapshot()
        parts = [
            f"chatd {__version__}",
            f"uptime_s={self.uptime_s():.1f}",
            f"users={users}",
            f"online={online}",
        ]
        parts.extend(f"{k}={v}" for k, v in c.items())
        return " ".join(parts)
