"""Reconcile provisioned users, grants and tiers with the server config.

Provisioned entities are owned by the config: on every start-up they are
replaced from it, so edits made to the store in between never survive.
"""

import logging

from topic_acl.config import ManagerConfig
from topic_acl.exceptions import ConfigError
from topic_acl.spec.grant import Grant
from topic_acl.spec.user import EVERYONE
from topic_acl.store.models import UserRecord
from topic_acl.store.state import JsonStore

logger = logging.getLogger(__name__)


def provision(store: JsonStore, config: ManagerConfig) -> None:
    """Apply the config's users, grants and tiers to the store in one transaction."""
    configured = {u.name: u for u in config.users}
    for grant in config.access:
        if grant.user != EVERYONE and grant.user not in configured:
            raise ConfigError(
                f"auth-access entry for {grant.user} references a user "
                "that is not defined in auth-users"
            )

    with store.transaction() as state:
        for tier in config.tiers:
            state.tiers[tier.code] = tier

        stale = [
            name
            for name, record in state.users.items()
            if record.provisioned and name not in configured
        ]
        for name in stale:
            del state.users[name]
            logger.info(f"Removed provisioned user {name} (no longer in config)")
        stale_names = set(stale)

        for name, user in configured.items():
            record = state.users.get(name)
            if record is None:
                state.users[name] = UserRecord(
                    name=name, hash=user.hash, role=user.role, provisioned=True
                )
                logger.info(f"Provisioned user {name} with role {user.role}")
            else:
                record.hash = user.hash
                record.role = user.role
                record.provisioned = True

        state.grants = [
            g
            for g in state.grants
            if not g.provisioned and g.user not in stale_names
        ]
        for entry in config.access:
            state.grants = [
                g
                for g in state.grants
                if (g.user, g.topic_pattern) != (entry.user, entry.topic_pattern)
            ]
            state.grants.append(
                Grant(
                    user=entry.user,
                    topic_pattern=entry.topic_pattern,
                    permission=entry.permission,
                    provisioned=True,
                    seq=state.take_seq(),
                )
            )

    logger.info(
        f"Provisioned {len(configured)} user(s) and {len(config.access)} grant(s) "
        "from config"
    )
