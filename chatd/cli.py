from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from .config import ChatRuntimeConfig, apply_config_data, load_toml
from .logging_config import configure_logging
from .paths import default_config_path, default_users_path, ensure_private_dir
from .service import ChatService
from .store import StoreCorruptError


def _write_default_config(config_path: str, users_path: str) -> None:
    cfg_dir = os.path.dirname(config_path)
    if cfg_dir:
        ensure_private_dir(Path(cfg_dir))

    defaults = ChatRuntimeConfig()
    content = f"""# chatd configuration (TOML)
#
# This file was created on first run. Command-line flags override it.

[server]

# Address and port for the WebSocket listener.
host = {defaults.host!r}
port = {defaults.port}

# Clients connect to ws://HOST:PORT<ws_path>; other paths get a 404.
ws_path = {defaults.ws_path!r}

# Registered users (JSON array of {{"name", "password"}} objects).
# Passwords are stored in plaintext.
users_path = {users_path!r}

# WebSocket keepalive pings (0 disables).
ping_interval_s = {defaults.ping_interval_s}
ping_timeout_s = {defaults.ping_timeout_s}

# Largest accepted inbound frame, in bytes (0 disables the limit).
max_frame_bytes = {defaults.max_frame_bytes}

[logging]

# Log level for chatd itself.
level = "INFO"

# Log level for the websockets library.
websockets_level = "WARNING"

# Log to stderr (systemd/journald friendly).
console = true

# Optional file path for logs (leave empty to disable).
file = ""

# Log format and optional date format.
format = "%(asctime)s %(levelname)s %(name)s: %(message)s"
datefmt = ""
"""

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(content)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="chatd", description="Run the chatd WebSocket chat server")

    p.add_argument(
        "--config",
        default=str(default_config_path()),
        help="Path to a TOML config file (created on first run)",
    )
    p.add_argument(
        "--users",
        default=None,
        help=f"Path to the JSON user store (default: {default_users_path()})",
    )
    p.add_argument("--host", default=None, help="Listen address (default: 0.0.0.0)")
    p.add_argument("--port", type=int, default=None, help="Listen port (default: 1111)")
    p.add_argument(
        "--ws-path", default=None, help="WebSocket endpoint path (default: /app)"
    )

    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level override (DEBUG, INFO, WARNING, ERROR). Default comes from config.",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Log file path override (empty disables file logging). Default comes from config.",
    )

    return p


def build_config(args: argparse.Namespace) -> ChatRuntimeConfig:
    config_path = str(args.config)
    cfg = ChatRuntimeConfig(config_path=config_path)

    if config_path and os.path.exists(config_path):
        cfg = apply_config_data(cfg, load_toml(config_path))

    if args.users is not None:
        cfg = replace(cfg, users_path=str(args.users) or None)
    if args.host is not None:
        cfg = replace(cfg, host=str(args.host))
    if args.port is not None:
        cfg = replace(cfg, port=int(args.port))
    if args.ws_path is not None:
        cfg = replace(cfg, ws_path=str(args.ws_path))

    if args.log_level is not None:
        cfg = replace(cfg, log_level=str(args.log_level))
    if args.log_file is not None:
        cfg = replace(cfg, log_file=str(args.log_file) if str(args.log_file) else None)

    return cfg


def main(argv: list[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)

    config_path = str(args.config)
    created = False
    if config_path and not os.path.exists(config_path):
        users_path = str(args.users) if args.users else str(default_users_path())
        _write_default_config(config_path, users_path)
        created = True

    cfg = build_config(args)
    configure_logging(cfg, override_level=args.log_level, override_file=args.log_file)
    log = logging.getLogger("chatd")

    if created:
        log.info("Created default config at %s", config_path)

    svc = ChatService(cfg)
    try:
        svc.start()
    except (StoreCorruptError, OSError) as e:
        log.error("Cannot load user store %s: %s", svc.users_path(), e)
        raise SystemExit(1) from e

    svc.run_forever()


if __name__ == "__main__":
    main()
