import logging

from topic_acl.exceptions import (
    ProvisionedChangeError,
    ReservedNameError,
    TierExistsError,
    UnknownTierError,
    UserExistsError,
    UserNotFoundError,
)
from topic_acl.passwords import (
    DEFAULT_BCRYPT_COST,
    hash_password,
    validate_cost,
    validate_hash,
)
from topic_acl.spec.user import (
    EVERYONE,
    Role,
    Tier,
    User,
    UserStats,
    is_reserved_username,
    normalize_username,
    validate_tier_code,
    validate_username,
)
from topic_acl.store.grants import GrantStore
from topic_acl.store.models import StoreState, UserRecord
from topic_acl.store.state import JsonStore

logger = logging.getLogger(__name__)


class UserRegistry:
    """Users, their roles, tiers and credentials, plus the tier catalogue.

    The anonymous sentinel is never stored; it is synthesised on read and
    cannot be added, removed or modified.
    """

    def __init__(
        self,
        store: JsonStore,
        grants: GrantStore,
        bcrypt_cost: int = DEFAULT_BCRYPT_COST,
    ):
        self.store = store
        self.grants = grants
        self.bcrypt_cost = validate_cost(bcrypt_cost)

    # --- Reads ---

    def user(self, username: str) -> User:
        username = normalize_username(username)
        state = self.store.load()
        if username == EVERYONE:
            return everyone_user()
        record = state.users.get(username)
        if record is None:
            raise UserNotFoundError(username)
        return to_user(state, record)

    def users(self) -> list[User]:
        """All users, admins first, then by name, the anonymous sentinel last."""
        return users_from_state(self.store.load())

    def tier(self, code: str) -> Tier:
        tier = self.store.load().tiers.get(code)
        if tier is None:
            raise UnknownTierError(code)
        return tier

    def tiers(self) -> list[Tier]:
        return sorted(self.store.load().tiers.values(), key=lambda t: t.code)

    # --- User mutations ---

    def add_user(
        self,
        username: str,
        password: str,
        role: Role | str = Role.REGULAR,
        hashed: bool = False,
        provisioned: bool = False,
    ) -> User:
        """Add a user; password is hashed unless hashed=True."""
        if is_reserved_username(username):
            raise ReservedNameError(username)
        validate_username(username)
        role = Role.parse(role)
        password_hash = self._password_hash(password, hashed)

        with self.store.transaction() as state:
            if username in state.users:
                raise UserExistsError(username)
            record = UserRecord(
                name=username,
                hash=password_hash,
                role=role,
                provisioned=provisioned,
            )
            state.users[username] = record

        logger.info(f"Added user {username} with role {role}")
        return to_user(state, record)

    def remove_user(self, username: str) -> None:
        """Remove a user together with all of its grants."""
        with self.store.transaction() as state:
            record = self._require_mutable(state, username)
            del state.users[record.name]
            removed = self.grants.remove_user_grants(record.name)
        logger.info(f"Removed user {username} and {removed} grant(s)")

    def change_password(self, username: str, password: str, hashed: bool = False) -> None:
        password_hash = self._password_hash(password, hashed)
        with self.store.transaction() as state:
            record = self._require_mutable(state, username)
            record.hash = password_hash
        logger.info(f"Changed password for user {username}")

    def change_role(self, username: str, role: Role | str) -> None:
        """Change the role of a user.

        Grants of a user promoted to admin are kept but have no effect while
        the user stays admin.
        """
        role = Role.parse(role)
        with self.store.transaction() as state:
            record = self._require_mutable(state, username)
            record.role = role
        logger.info(f"Changed role for user {username} to {role}")

    def change_tier(self, username: str, code: str) -> None:
        with self.store.transaction() as state:
            record = self._require_mutable(state, username)
            if code not in state.tiers:
                raise UnknownTierError(code)
            record.tier_code = code
        logger.info(f"Changed tier for user {username} to {code}")

    def reset_tier(self, username: str) -> None:
        with self.store.transaction() as state:
            record = self._require_mutable(state, username)
            record.tier_code = None
        logger.info(f"Removed tier from user {username}")

    # --- Tier mutations ---

    def add_tier(self, tier: Tier) -> Tier:
        validate_tier_code(tier.code)
        with self.store.transaction() as state:
            if tier.code in state.tiers:
                raise TierExistsError(tier.code)
            state.tiers[tier.code] = tier
        logger.info(f"Added tier {tier.code}")
        return tier

    def remove_tier(self, code: str) -> None:
        """Remove a tier and unassign it from every user holding it."""
        with self.store.transaction() as state:
            if code not in state.tiers:
                raise UnknownTierError(code)
            del state.tiers[code]
            for record in state.users.values():
                if record.tier_code == code:
                    record.tier_code = None
        logger.info(f"Removed tier {code}")

    # --- Usage stats ---

    def add_stats(self, batch: dict[str, UserStats]) -> int:
        """Add per-user counters in one transaction; returns users updated."""
        updated = 0
        with self.store.transaction() as state:
            for username, stats in batch.items():
                record = state.users.get(username)
                if record is None:
                    logger.debug(f"Dropping stats for unknown user {username}")
                    continue
                record.stats = record.stats + stats
                updated += 1
        return updated

    def reset_stats(self) -> None:
        with self.store.transaction() as state:
            for record in state.users.values():
                record.stats = UserStats()
        logger.info("Reset usage stats for all users")

    # --- Helpers ---

    def _password_hash(self, password: str, hashed: bool) -> str:
        if hashed:
            return validate_hash(password)
        return hash_password(password, self.bcrypt_cost)

    def _require_mutable(self, state: StoreState, username: str) -> UserRecord:
        if is_reserved_username(username):
            raise ReservedNameError(username)
        record = state.users.get(username)
        if record is None:
            raise UserNotFoundError(username)
        if record.provisioned:
            raise ProvisionedChangeError(f"user {username}")
        return record


def everyone_user() -> User:
    return User(name=EVERYONE, role=Role.REGULAR)


def to_user(state: StoreState, record: UserRecord) -> User:
    tier = state.tiers.get(record.tier_code) if record.tier_code else None
    return User(
        name=record.name,
        hash=record.hash,
        role=record.role,
        tier=tier,
        provisioned=record.provisioned,
        stats=record.stats,
    )


def users_from_state(state: StoreState) -> list[User]:
    records = sorted(
        state.users.values(),
        key=lambda r: (r.role != Role.ADMIN, r.name),
    )
    return [to_user(state, r) for r in records] + [everyone_user()]
