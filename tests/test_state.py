"""JSON store bootstrap, persistence and transactions."""

import stat

import pytest

from topic_acl import ConfigError, JsonStore, StorageIOError
from topic_acl.store.models import UserRecord


def test_missing_path_is_config_error():
    with pytest.raises(ConfigError):
        JsonStore(None)
    with pytest.raises(ConfigError):
        JsonStore("")


def test_nonexistent_file_is_config_error(tmp_path):
    with pytest.raises(ConfigError):
        JsonStore(tmp_path / "missing.json")


def test_create_bootstraps_empty_store(tmp_path):
    store = JsonStore.create(tmp_path / "nested" / "user.json")
    state = store.load()
    assert state.users == {}
    assert state.grants == []
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o600


def test_create_keeps_existing_store(store):
    with store.transaction() as state:
        state.users["alice"] = UserRecord(name="alice", hash="x")
    again = JsonStore.create(store.path)
    assert "alice" in again.load().users


def test_transaction_persists_on_success(store):
    with store.transaction() as state:
        state.users["alice"] = UserRecord(name="alice", hash="x")
    assert JsonStore(store.path).load().users["alice"].hash == "x"


def test_transaction_discards_on_error(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as state:
            state.users["alice"] = UserRecord(name="alice", hash="x")
            raise RuntimeError("boom")
    assert store.load().users == {}


def test_nested_transactions_share_state_and_write_once(store):
    with store.transaction() as outer:
        outer.users["alice"] = UserRecord(name="alice", hash="x")
        with store.transaction() as inner:
            assert inner is outer
            inner.users["bob"] = UserRecord(name="bob", hash="y")
        # Not yet written by the inner block
        assert store.load().users == {}
    assert set(store.load().users) == {"alice", "bob"}


def test_seq_is_monotonic(store):
    with store.transaction() as state:
        first = state.take_seq()
        second = state.take_seq()
    assert second == first + 1
    with store.transaction() as state:
        assert state.take_seq() == second + 1


def test_corrupt_file_is_storage_error(store):
    store.path.write_text("{not json")
    with pytest.raises(StorageIOError):
        store.load()


def test_unreadable_file_is_storage_error(store):
    store.path.unlink()
    with pytest.raises(StorageIOError):
        store.load()


def test_directory_path_is_config_error(tmp_path):
    with pytest.raises(ConfigError):
        JsonStore(tmp_path)
