import json
import os

import pytest

from chatd.store import JsonUserStore, StoreCorruptError
from chatd.users import AuthResult, User, UserDirectory, UserExistsError


def test_missing_store_starts_empty(users_file) -> None:
    directory = UserDirectory.load(JsonUserStore(users_file))
    assert len(directory) == 0
    assert not users_file.exists()


def test_add_persists_snapshot(users_file) -> None:
    directory = UserDirectory.load(JsonUserStore(users_file))
    directory.add(User("alice", "pw1"))
    directory.add(User("bob", "pw2"))

    data = json.loads(users_file.read_text(encoding="utf-8"))
    assert sorted(data, key=lambda u: u["name"]) == [
        {"name": "alice", "password": "pw1"},
        {"name": "bob", "password": "pw2"},
    ]


def test_store_writes_compact_json(users_file) -> None:
    JsonUserStore(users_file).save([User("alice", "pw")])
    assert users_file.read_text(encoding="utf-8") == '[{"name":"alice","password":"pw"}]'


def test_duplicate_registration_is_rejected(users_file) -> None:
    directory = UserDirectory.load(JsonUserStore(users_file))
    directory.add(User("alice", "pw1"))

    with pytest.raises(UserExistsError):
        directory.add(User("alice", "other"))

    assert len(directory) == 1
    assert directory.get("alice") == User("alice", "pw1")
    assert len(json.loads(users_file.read_text(encoding="utf-8"))) == 1


def test_reload_reproduces_directory(users_file) -> None:
    UserDirectory.load(JsonUserStore(users_file)).add(User("alice", "pw1"))

    reloaded = UserDirectory.load(JsonUserStore(users_file))
    assert reloaded.names() == ["alice"]
    assert reloaded.authenticate("alice", "pw1") is AuthResult.OK


def test_authenticate_results(users_file) -> None:
    directory = UserDirectory.load(JsonUserStore(users_file))
    directory.add(User("alice", "pw1"))

    assert directory.authenticate("alice", "pw1") is AuthResult.OK
    assert directory.authenticate("alice", "nope") is AuthResult.WRONG_PASSWORD
    assert directory.authenticate("carol", "pw1") is AuthResult.NO_SUCH_USER


def test_failed_write_leaves_directory_unchanged(users_file) -> None:
    class BrokenStore(JsonUserStore):
        def save(self, users) -> None:
            raise OSError("disk full")

    directory = UserDirectory.load(BrokenStore(users_file))
    with pytest.raises(OSError):
        directory.add(User("alice", "pw1"))

    assert "alice" not in directory
    assert directory.get("alice") is None


def test_duplicate_names_in_file_keep_last(users_file) -> None:
    users_file.write_text(
        '[{"name":"alice","password":"old"},{"name":"alice","password":"new"}]',
        encoding="utf-8",
    )
    directory = UserDirectory.load(JsonUserStore(users_file))
    assert len(directory) == 1
    assert directory.get("alice") == User("alice", "new")


@pytest.mark.parametrize(
    "content",
    [
        b"not json",
        b'{"name": "alice", "password": "pw"}',
        b'[{"name": "alice"}]',
        b'[{"name": 1, "password": "pw"}]',
        b'["alice"]',
        b"\xff\xfe",
        b'[{"name":"\xff","password":"x"}]',
    ],
)
def test_corrupt_store_fails_load(users_file, content) -> None:
    users_file.write_bytes(content)
    with pytest.raises(StoreCorruptError):
        UserDirectory.load(JsonUserStore(users_file))


def test_save_creates_parent_dir_and_leaves_no_temp_files(tmp_path) -> None:
    path = tmp_path / "nested" / "users.json"
    JsonUserStore(path).save([User("alice", "pw")])

    assert path.exists()
    assert os.listdir(path.parent) == ["users.json"]
