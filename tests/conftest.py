"""Shared test fixtures for topic-acl tests."""

import pytest

from topic_acl import JsonStore, Manager, ManagerConfig, Permission, hash_password

TEST_BCRYPT_COST = 4
TEST_PASSWORD = "s3cret-pass"


@pytest.fixture(scope="session")
def password_hash():
    """A bcrypt hash of TEST_PASSWORD, computed once per session."""
    return hash_password(TEST_PASSWORD, TEST_BCRYPT_COST)


@pytest.fixture
def store_path(tmp_path):
    """Path to a freshly bootstrapped, empty auth store."""
    return JsonStore.create(tmp_path / "user.json").path


@pytest.fixture
def store(store_path):
    return JsonStore(store_path)


@pytest.fixture
def make_config(store_path):
    """Build a ManagerConfig for the temp store; stats are written synchronously."""

    def _make(**overrides) -> ManagerConfig:
        params = dict(
            auth_file=store_path,
            default_access=Permission.READ_WRITE,
            bcrypt_cost=TEST_BCRYPT_COST,
            stats_queue_writer_interval=0,
        )
        params.update(overrides)
        return ManagerConfig(**params)

    return _make


@pytest.fixture
def make_manager(make_config):
    """Factory for managers that are closed after the test."""
    managers = []

    def _make(**overrides) -> Manager:
        manager = Manager(make_config(**overrides))
        managers.append(manager)
        return manager

    yield _make

    for manager in managers:
        manager.close()


@pytest.fixture
def manager(make_manager):
    return make_manager()
