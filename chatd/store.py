"""JSON file persistence for the user directory."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from .paths import ensure_private_dir

if TYPE_CHECKING:
    from .users import User


class StoreCorruptError(ValueError):
    """The store file exists but does not hold a valid user list."""


class JsonUserStore:
    """
    Whole-snapshot JSON store for registered users.

    The file holds a JSON array of {"name": ..., "password": ...} objects and
    is rewritten in full on every save.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self.log = logging.getLogger("chatd.store")

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> list[User]:
        from .users import User

        with open(self.path, "rb") as f:
            raw = f.read()

        try:
            data = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise StoreCorruptError(f"{self.path}: not valid UTF-8: {e}") from e
        except json.JSONDecodeError as e:
            raise StoreCorruptError(f"{self.path}: invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise StoreCorruptError(f"{self.path}: expected a JSON array of users")

        users: list[User] = []
        for i, item in enumerate(data):
            if not isinstance(item, dict):
                raise StoreCorruptError(f"{self.path}: entry {i} is not an object")
            name = item.get("name")
            password = item.get("password")
            if not isinstance(name, str) or not isinstance(password, str):
                raise StoreCorruptError(
                    f"{self.path}: entry {i} needs string 'name' and 'password'"
                )
            users.append(User(name=name, password=password))

        self.log.debug("Loaded %s users from %s", len(users), self.path)
        return users

    def save(self, users: Iterable[User]) -> None:
        """Replace the store file with a snapshot of `users`.

        The write goes through a temp file and os.replace, so a failed save
        leaves the previous snapshot in place. OSError propagates.
        """
        payload = json.dumps(
            [{"name": u.name, "password": u.password} for u in users],
            separators=(",", ":"),
            ensure_ascii=False,
        )

        parent = self.path.parent
        if not parent.exists():
            ensure_private_dir(parent)

        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            try:
                os.chmod(tmp, 0o600)
            except Exception:
                pass
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise
