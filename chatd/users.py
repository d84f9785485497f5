from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from .store import JsonUserStore


class UserExistsError(Exception):
    """A user with this name is already registered."""


class AuthResult(enum.Enum):
    OK = "ok"
    WRONG_PASSWORD = "wrong_password"
    NO_SUCH_USER = "no_such_user"


@dataclass(frozen=True)
class User:
    name: str
    # Stored and compared in plaintext. Hashing would change the on-disk
    # format.
    password: str


class UserDirectory:
    """
    Authoritative name -> User map backed by a JsonUserStore.

    Every successful add() has been written to the store before it returns.
    Callers serialize access (see ChatState); the directory itself does no
    locking.
    """

    def __init__(self, store: JsonUserStore) -> None:
        self.store = store
        self.log = logging.getLogger("chatd.users")
        self._users: dict[str, User] = {}

    @classmethod
    def load(cls, store: JsonUserStore) -> UserDirectory:
        """Build a directory from the store, or an empty one if it is absent.

        StoreCorruptError and OSError propagate; there is no usable state to
        fall back to.
        """
        directory = cls(store)
        if not store.exists():
            directory.log.info("No user store at %s; starting empty", store.path)
            return directory

        for user in store.load():
            if user.name in directory._users:
                directory.log.warning(
                    "Duplicate user %r in %s; keeping the last entry",
                    user.name,
                    store.path,
                )
            directory._users[user.name] = user

        directory.log.info("Loaded %s users from %s", len(directory._users), store.path)
        return directory

    def add(self, user: User) -> None:
        if user.name in self._users:
            raise UserExistsError(user.name)

        # Persist first so a failed write never leaves an unsaved user visible.
        snapshot = list(self._users.values())
        snapshot.append(user)
        self.store.save(snapshot)

        self._users[user.name] = user

    def get(self, name: str) -> User | None:
        return self._users.get(name)

    def authenticate(self, name: str, password: str) -> AuthResult:
        user = self._users.get(name)
        if user is None:
            return AuthResult.NO_SUCH_USER
        if user.password != password:
            return AuthResult.WRONG_PASSWORD
        return AuthResult.OK

    def names(self) -> list[str]:
        return list(self._users.keys())

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, name: object) -> bool:
        return name in self._users
