from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

from .constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_FRAME_BYTES,
    DEFAULT_PORT,
    DEFAULT_WS_PATH,
)


@dataclass(frozen=True)
class ChatRuntimeConfig:
    config_path: str | None = None
    users_path: str | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    ws_path: str = DEFAULT_WS_PATH
    ping_interval_s: float = 20.0
    ping_timeout_s: float = 20.0
    max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES
    log_level: str = "INFO"
    log_websockets_level: str = "WARNING"
    log_console: bool = True
    log_file: str | None = None
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    log_datefmt: str | None = None


_LOGGING_KEYS = {
    "level": "log_level",
    "websockets_level": "log_websockets_level",
    "console": "log_console",
    "file": "log_file",
    "format": "log_format",
    "datefmt": "log_datefmt",
}


def load_toml(path: str) -> dict:
    import tomllib

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data if isinstance(data, dict) else {}


def apply_config_data(base: ChatRuntimeConfig, data: dict[str, Any]) -> ChatRuntimeConfig:
    """Overlay a parsed TOML document onto `base`.

    Keys may sit at the top level or under [server]; [logging] keys are
    mapped onto the log_* fields. Unknown keys are ignored.
    """
    server = data.get("server") if isinstance(data, dict) else None
    if isinstance(server, dict):
        data = {**data, **server}

    log_table = data.get("logging") if isinstance(data, dict) else None
    if isinstance(log_table, dict):
        mapped = {
            field: log_table.get(key)
            for key, field in _LOGGING_KEYS.items()
            if key in log_table
        }
        data = {**data, **mapped}

    allowed = set(asdict(base).keys())
    # This identifies where the config came from; do not let the file override it.
    allowed.discard("config_path")
    updates = {k: v for k, v in data.items() if k in allowed}

    for key in ("users_path", "log_file", "log_datefmt"):
        if key in updates and updates[key] == "":
            updates[key] = None

    if "port" in updates:
        updates["port"] = int(updates["port"])
    if "max_frame_bytes" in updates:
        updates["max_frame_bytes"] = int(updates["max_frame_bytes"])
    for key in ("ping_interval_s", "ping_timeout_s"):
        if key in updates:
            updates[key] = float(updates[key])

    return replace(base, **updates) if updates else base
