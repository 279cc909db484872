"""
Access-control manager.

Ties together the JSON store, the user registry, the grant store, the
resolution engine and the usage-stats writer. Reads are served from an
immutable snapshot that is rebuilt after every mutation. The snapshot is also
rebuilt when the store file changes on disk, which is how writes made by other
processes (the admin commands) reach a running server.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from topic_acl.config import ManagerConfig
from topic_acl.engine.index import ACLIndex
from topic_acl.engine.service import ACLService
from topic_acl.exceptions import StorageIOError, UserNotFoundError
from topic_acl.spec.grant import Grant
from topic_acl.spec.permission import Permission
from topic_acl.spec.user import Role, Tier, User, UserStats, normalize_username
from topic_acl.stats.queue_writer import StatsQueueWriter
from topic_acl.store.grants import GrantStore, grants_for
from topic_acl.store.provisioning import provision
from topic_acl.store.state import JsonStore
from topic_acl.store.users import UserRegistry, users_from_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    users: dict[str, User] = field(default_factory=dict)
    grants: dict[str, list[Grant]] = field(default_factory=dict)
    acl: ACLService = field(default_factory=ACLService)
    signature: tuple[int, int, int] | None = None


class Manager:
    """Entry point used by the server and the administrative tooling.

    Construct one explicitly and pass it to whatever needs it; call close()
    (or use it as a context manager) to flush pending usage stats.
    """

    def __init__(self, config: ManagerConfig):
        self.config = config
        self.store = JsonStore(config.auth_file)
        self.grant_store = GrantStore(self.store)
        self.registry = UserRegistry(self.store, self.grant_store, config.bcrypt_cost)
        self._lock = threading.Lock()
        self._snapshot = Snapshot(acl=ACLService(default_access=config.default_access))

        if config.provision_enabled:
            provision(self.store, config)
        self._refresh()

        self.stats_writer: StatsQueueWriter | None = None
        if config.stats_queue_writer_interval > 0:
            self.stats_writer = StatsQueueWriter(
                commit=self._commit_stats,
                interval=config.stats_queue_writer_interval,
                capacity=config.stats_queue_capacity,
            )
            self.stats_writer.start()

    def __enter__(self) -> "Manager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self.stats_writer is not None:
            self.stats_writer.stop()

    # --- Resolution ---

    def resolve(self, identity: str, topic: str) -> Permission:
        """Effective permission of identity on topic. Never raises for unknown input."""
        return self._current().acl.resolve(identity, topic)

    def can_read(self, identity: str, topic: str) -> bool:
        return self.resolve(identity, topic).can_read

    def can_write(self, identity: str, topic: str) -> bool:
        return self.resolve(identity, topic).can_write

    def default_access(self) -> Permission:
        return self.config.default_access

    # --- Users ---

    def user(self, username: str) -> User:
        username = normalize_username(username)
        user = self._current().users.get(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    def users(self) -> list[User]:
        return list(self._current().users.values())

    def add_user(
        self,
        username: str,
        password: str,
        role: Role | str = Role.REGULAR,
        hashed: bool = False,
    ) -> User:
        with self._mutation():
            return self.registry.add_user(username, password, role, hashed)

    def remove_user(self, username: str) -> None:
        with self._mutation():
            self.registry.remove_user(username)

    def change_password(self, username: str, password: str, hashed: bool = False) -> None:
        with self._mutation():
            self.registry.change_password(username, password, hashed)

    def change_role(self, username: str, role: Role | str) -> None:
        with self._mutation():
            self.registry.change_role(username, role)

    def change_tier(self, username: str, code: str) -> None:
        with self._mutation():
            self.registry.change_tier(username, code)

    def reset_tier(self, username: str) -> None:
        with self._mutation():
            self.registry.reset_tier(username)

    # --- Tiers ---

    def tier(self, code: str) -> Tier:
        return self.registry.tier(code)

    def tiers(self) -> list[Tier]:
        return self.registry.tiers()

    def add_tier(self, tier: Tier) -> Tier:
        with self._mutation():
            return self.registry.add_tier(tier)

    def remove_tier(self, code: str) -> None:
        with self._mutation():
            self.registry.remove_tier(code)

    # --- Grants ---

    def grants(self, username: str) -> list[Grant]:
        return list(self._current().grants.get(normalize_username(username), []))

    def allow_access(
        self, username: str, topic_pattern: str, permission: Permission | str
    ) -> Grant:
        with self._mutation():
            return self.grant_store.allow_access(username, topic_pattern, permission)

    def reset_access(self, username: str = "", topic_pattern: str = "") -> int:
        with self._mutation():
            return self.grant_store.reset_access(username, topic_pattern)

    # --- Usage stats ---

    def enqueue_stats(
        self, username: str, messages: int = 1, emails: int = 0, calls: int = 0
    ) -> bool:
        """Record usage without waiting for storage; returns False if dropped."""
        if self.stats_writer is not None:
            return self.stats_writer.enqueue(username, messages, emails, calls)
        stats = UserStats(messages=messages, emails=emails, calls=calls)
        try:
            self._commit_stats({username: stats})
        except StorageIOError as e:
            logger.error(f"Failed to write usage stats for {username}: {e}")
            return False
        return True

    def reset_stats(self) -> None:
        with self._mutation():
            self.registry.reset_stats()

    def _commit_stats(self, batch: dict[str, UserStats]) -> None:
        with self._mutation():
            self.registry.add_stats(batch)

    # --- Snapshot ---

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        with self._lock:
            yield
            self._refresh()

    def _current(self) -> Snapshot:
        snapshot = self._snapshot
        if self.store.signature() == snapshot.signature:
            return snapshot
        # Changed on disk by someone else; a mutation in flight refreshes anyway
        if not self._lock.acquire(blocking=False):
            return snapshot
        try:
            self._refresh()
        except StorageIOError as e:
            logger.error(f"Failed to reload auth store, serving cached state: {e}")
        finally:
            self._lock.release()
        return self._snapshot

    def _refresh(self) -> None:
        # Taken before loading so a write racing the load triggers another reload
        signature = self.store.signature()
        state = self.store.load()
        users = {u.name: u for u in users_from_state(state)}
        grants = {name: grants_for(state, name) for name in users}
        acl = ACLService(
            default_access=self.config.default_access,
            index=ACLIndex.build(state.grants),
            admins=frozenset(u.name for u in users.values() if u.is_admin),
            known_users=frozenset(users),
        )
        self._snapshot = Snapshot(
            users=users, grants=grants, acl=acl, signature=signature
        )
