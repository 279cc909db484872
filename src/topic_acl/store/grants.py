import logging

from topic_acl.engine.matchers import validate_pattern
from topic_acl.exceptions import (
    InvalidArgumentError,
    ProvisionedChangeError,
    UserNotFoundError,
)
from topic_acl.spec.grant import Grant
from topic_acl.spec.permission import Permission
from topic_acl.spec.user import EVERYONE, normalize_username
from topic_acl.store.models import StoreState
from topic_acl.store.state import JsonStore

logger = logging.getLogger(__name__)


class GrantStore:
    """CRUD and reset operations over (user, topic pattern) -> permission grants."""

    def __init__(self, store: JsonStore):
        self.store = store

    def grants(self, username: str) -> list[Grant]:
        """All grants owned by username, ordered by topic pattern."""
        return grants_for(self.store.load(), normalize_username(username))

    def all_grants(self) -> list[Grant]:
        return list(self.store.load().grants)

    def allow_access(
        self,
        username: str,
        topic_pattern: str,
        permission: Permission | str,
        provisioned: bool = False,
    ) -> Grant:
        """Insert or overwrite the grant for (username, topic_pattern).

        A DENY_ALL permission is stored as an explicit deny entry, which
        overrides the default access; it is not the same as removing the grant.
        """
        username = normalize_username(username)
        validate_pattern(topic_pattern)
        permission = Permission.parse(permission)

        with self.store.transaction() as state:
            _require_user(state, username)
            existing = _find(state, username, topic_pattern)
            if existing is not None and existing.provisioned and not provisioned:
                raise ProvisionedChangeError(
                    f"access for user {username} and topic {topic_pattern}"
                )
            grant = Grant(
                user=username,
                topic_pattern=topic_pattern,
                permission=permission,
                provisioned=provisioned,
                seq=state.take_seq(),
            )
            state.grants = [g for g in state.grants if g.key != grant.key]
            state.grants.append(grant)

        logger.info(
            f"Granted {permission} on {topic_pattern} to {username}"
            + (" (provisioned)" if provisioned else "")
        )
        return grant

    def reset_access(self, username: str = "", topic_pattern: str = "") -> int:
        """Remove non-provisioned grants and return how many were removed.

        ("", "") clears every user, (username, "") clears one user and
        (username, topic_pattern) clears exactly one grant.
        """
        username = normalize_username(username)
        if not username and topic_pattern:
            raise InvalidArgumentError("a topic reset requires a username")

        with self.store.transaction() as state:
            if username:
                _require_user(state, username)

            def dropped(g: Grant) -> bool:
                if g.provisioned:
                    return False
                if username and g.user != username:
                    return False
                if topic_pattern and g.topic_pattern != topic_pattern:
                    return False
                return True

            before = len(state.grants)
            state.grants = [g for g in state.grants if not dropped(g)]
            removed = before - len(state.grants)

        logger.info(
            f"Reset access (user={username or '<all>'}, "
            f"topic={topic_pattern or '<all>'}): {removed} grant(s) removed"
        )
        return removed

    def remove_user_grants(self, username: str) -> int:
        """Remove every grant of username, provisioned or not."""
        with self.store.transaction() as state:
            before = len(state.grants)
            state.grants = [g for g in state.grants if g.user != username]
            return before - len(state.grants)


def grants_for(state: StoreState, username: str) -> list[Grant]:
    return sorted(
        (g for g in state.grants if g.user == username),
        key=lambda g: g.topic_pattern,
    )


def _find(state: StoreState, username: str, topic_pattern: str) -> Grant | None:
    for grant in state.grants:
        if grant.user == username and grant.topic_pattern == topic_pattern:
            return grant
    return None


def _require_user(state: StoreState, username: str) -> None:
    if username != EVERYONE and username not in state.users:
        raise UserNotFoundError(username)
