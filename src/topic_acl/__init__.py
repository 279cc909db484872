from topic_acl.config import ManagerConfig, ProvisionedGrant, ProvisionedUser
from topic_acl.engine.matchers import matches
from topic_acl.engine.service import ACLService
from topic_acl.exceptions import (
    AccessControlError,
    AlreadyExistsError,
    ConfigError,
    InvalidArgumentError,
    InvalidPatternError,
    InvalidPermissionError,
    InvalidRoleError,
    InvalidTierCodeError,
    InvalidUsernameError,
    NotFoundError,
    ProvisionedChangeError,
    ReservedNameError,
    StorageIOError,
    TierExistsError,
    UnknownTierError,
    UserExistsError,
    UserNotFoundError,
)
from topic_acl.manager import Manager
from topic_acl.passwords import confirm_password, hash_password, verify_password
from topic_acl.spec.grant import Grant
from topic_acl.spec.permission import Permission
from topic_acl.spec.user import EVERYONE, Role, Tier, TierLimits, User, UserStats
from topic_acl.stats.queue_writer import StatsQueueWriter
from topic_acl.store.grants import GrantStore
from topic_acl.store.state import JsonStore
from topic_acl.store.users import UserRegistry

__version__ = "0.1.0"

__all__ = [
    "Manager",
    "ManagerConfig",
    "ProvisionedUser",
    "ProvisionedGrant",
    "ACLService",
    "GrantStore",
    "UserRegistry",
    "JsonStore",
    "StatsQueueWriter",
    "Permission",
    "Grant",
    "Role",
    "Tier",
    "TierLimits",
    "User",
    "UserStats",
    "EVERYONE",
    "matches",
    "hash_password",
    "verify_password",
    "confirm_password",
    "AccessControlError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidArgumentError",
    "StorageIOError",
    "ConfigError",
    "UserNotFoundError",
    "UserExistsError",
    "TierExistsError",
    "ReservedNameError",
    "InvalidUsernameError",
    "InvalidRoleError",
    "InvalidPatternError",
    "InvalidPermissionError",
    "InvalidTierCodeError",
    "UnknownTierError",
    "ProvisionedChangeError",
]
