"""Reconciling provisioned users and grants from the server config."""

import pytest

from topic_acl import (
    EVERYONE,
    ConfigError,
    Permission,
    ProvisionedChangeError,
    ProvisionedGrant,
    ProvisionedUser,
    Role,
)


@pytest.fixture
def provisioned(password_hash):
    """Config pieces for one admin, one regular user and their grants."""
    users = [
        ProvisionedUser(name="phil", hash=password_hash, role=Role.ADMIN),
        ProvisionedUser(name="ben", hash=password_hash, role=Role.REGULAR),
    ]
    access = [
        ProvisionedGrant(user="ben", topic_pattern="alerts*", permission=Permission.READ_WRITE),
        ProvisionedGrant(user=EVERYONE, topic_pattern="public", permission=Permission.READ_ONLY),
    ]
    return users, access


def test_users_and_grants_are_created(make_manager, provisioned):
    users, access = provisioned
    manager = make_manager(users=users, access=access, default_access=Permission.DENY_ALL)

    assert manager.user("phil").provisioned
    assert manager.user("phil").is_admin
    ben_grants = manager.grants("ben")
    assert [(g.topic_pattern, g.provisioned) for g in ben_grants] == [("alerts*", True)]
    assert manager.resolve("ben", "alerts-eu") is Permission.READ_WRITE
    assert manager.resolve("stranger", "public") is Permission.READ_ONLY


def test_provisioned_entities_are_not_editable(make_manager, provisioned):
    users, access = provisioned
    manager = make_manager(users=users, access=access)

    with pytest.raises(ProvisionedChangeError):
        manager.change_role("ben", Role.ADMIN)
    with pytest.raises(ProvisionedChangeError):
        manager.remove_user("phil")
    with pytest.raises(ProvisionedChangeError):
        manager.allow_access("ben", "alerts*", Permission.DENY_ALL)


def test_reset_keeps_provisioned_grants(make_manager, provisioned):
    users, access = provisioned
    manager = make_manager(users=users, access=access)
    manager.allow_access("ben", "extra", Permission.READ_ONLY)

    manager.reset_access()

    assert [g.topic_pattern for g in manager.grants("ben")] == ["alerts*"]
    assert [g.topic_pattern for g in manager.grants(EVERYONE)] == ["public"]


def test_reload_replaces_provisioned_state(make_manager, provisioned, password_hash):
    users, access = provisioned
    first = make_manager(users=users, access=access)
    first.add_user("dynamic", password_hash, hashed=True)
    first.allow_access("dynamic", "mine", Permission.READ_WRITE)
    first.close()

    # ben dropped from config, everyone grant changed
    second = make_manager(
        users=users[:1],
        access=[
            ProvisionedGrant(
                user=EVERYONE, topic_pattern="public", permission=Permission.DENY_ALL
            )
        ],
    )

    names = [u.name for u in second.users()]
    assert "ben" not in names
    assert "dynamic" in names
    assert second.grants("ben") == []
    assert [g.permission for g in second.grants(EVERYONE)] == [Permission.DENY_ALL]
    assert [g.topic_pattern for g in second.grants("dynamic")] == ["mine"]


def test_existing_dynamic_user_is_taken_over(make_manager, password_hash):
    first = make_manager()
    first.add_user("ben", "other-password")
    first.close()

    second = make_manager(
        users=[ProvisionedUser(name="ben", hash=password_hash, role=Role.ADMIN)]
    )
    ben = second.user("ben")
    assert ben.provisioned
    assert ben.is_admin
    assert ben.hash == password_hash


def test_provisioning_disabled_leaves_store_alone(make_manager, provisioned):
    users, access = provisioned
    manager = make_manager(users=users, access=access, provision_enabled=False)
    assert [u.name for u in manager.users()] == [EVERYONE]


def test_grant_for_undefined_user_is_config_error(make_manager):
    with pytest.raises(ConfigError):
        make_manager(
            access=[
                ProvisionedGrant(
                    user="ghost", topic_pattern="x", permission=Permission.READ_ONLY
                )
            ]
        )
