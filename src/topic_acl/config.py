"""Configuration for the access-control manager."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from topic_acl.engine.matchers import validate_pattern
from topic_acl.exceptions import AccessControlError, ConfigError
from topic_acl.passwords import DEFAULT_BCRYPT_COST, validate_cost, validate_hash
from topic_acl.spec.permission import Permission
from topic_acl.spec.user import (
    Role,
    Tier,
    TierLimits,
    is_reserved_username,
    normalize_username,
    validate_tier_code,
    validate_username,
)

DEFAULT_STATS_QUEUE_WRITER_INTERVAL = 33.0
DEFAULT_STATS_QUEUE_CAPACITY = 10000


@dataclass
class ProvisionedUser:
    """A user defined in the server config, as name:bcrypt-hash:role."""

    name: str
    hash: str
    role: Role = Role.REGULAR

    @classmethod
    def parse(cls, entry: str) -> "ProvisionedUser":
        parts = entry.split(":")
        if len(parts) != 3:
            raise ConfigError(
                f"invalid auth-users entry {entry!r}, expected name:hash:role"
            )
        name, password_hash, role = (p.strip() for p in parts)
        if is_reserved_username(name):
            raise ConfigError(f"auth-users entry uses reserved name {name!r}")
        try:
            return cls(
                name=validate_username(name),
                hash=validate_hash(password_hash),
                role=Role.parse(role),
            )
        except AccessControlError as e:
            raise ConfigError(f"invalid auth-users entry for {name!r}: {e}") from e


@dataclass
class ProvisionedGrant:
    """A grant defined in the server config, as name:topic:permission."""

    user: str
    topic_pattern: str
    permission: Permission

    @classmethod
    def parse(cls, entry: str) -> "ProvisionedGrant":
        parts = entry.split(":")
        if len(parts) != 3:
            raise ConfigError(
                f"invalid auth-access entry {entry!r}, expected name:topic:permission"
            )
        user, topic, perms = (p.strip() for p in parts)
        try:
            return cls(
                user=normalize_username(user),
                topic_pattern=validate_pattern(topic),
                permission=Permission.parse(perms),
            )
        except AccessControlError as e:
            raise ConfigError(f"invalid auth-access entry {entry!r}: {e}") from e


@dataclass
class ManagerConfig:
    """Main configuration for the access-control manager."""

    auth_file: Optional[Path] = None
    default_access: Permission = Permission.READ_WRITE
    bcrypt_cost: int = DEFAULT_BCRYPT_COST
    stats_queue_writer_interval: float = DEFAULT_STATS_QUEUE_WRITER_INTERVAL
    stats_queue_capacity: int = DEFAULT_STATS_QUEUE_CAPACITY
    provision_enabled: bool = True
    users: list[ProvisionedUser] = field(default_factory=list)
    access: list[ProvisionedGrant] = field(default_factory=list)
    tiers: list[Tier] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManagerConfig":
        data = {k.replace("-", "_"): v for k, v in data.items()}

        auth_file = data.get("auth_file")
        try:
            default_access = Permission.parse(data.get("auth_default_access", ""))
        except AccessControlError as e:
            raise ConfigError(
                "if set, auth-default-access must be 'read-write', 'read-only', "
                "'write-only' or 'deny-all'"
            ) from e

        try:
            bcrypt_cost = validate_cost(
                int(data.get("auth_bcrypt_cost", DEFAULT_BCRYPT_COST))
            )
            interval = float(
                data.get(
                    "auth_stats_queue_writer_interval",
                    DEFAULT_STATS_QUEUE_WRITER_INTERVAL,
                )
            )
            capacity = int(
                data.get("auth_stats_queue_capacity", DEFAULT_STATS_QUEUE_CAPACITY)
            )
        except (AccessControlError, TypeError, ValueError) as e:
            raise ConfigError(f"invalid auth config: {e}") from e
        if interval < 0:
            raise ConfigError("auth-stats-queue-writer-interval cannot be negative")
        if capacity < 1:
            raise ConfigError("auth-stats-queue-capacity must be at least 1")

        users = [ProvisionedUser.parse(e) for e in data.get("auth_users") or []]
        access = [ProvisionedGrant.parse(e) for e in data.get("auth_access") or []]
        tiers = [_parse_tier(t) for t in data.get("auth_tiers") or []]

        return cls(
            auth_file=Path(auth_file).expanduser() if auth_file else None,
            default_access=default_access,
            bcrypt_cost=bcrypt_cost,
            stats_queue_writer_interval=interval,
            stats_queue_capacity=capacity,
            provision_enabled=bool(data.get("auth_provision_enabled", True)),
            users=users,
            access=access,
            tiers=tiers,
        )

    @classmethod
    def load(cls, config_path: Path) -> "ManagerConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path).expanduser()
        if not config_path.exists():
            raise ConfigError(f"config file {config_path} does not exist")

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config file {config_path} must contain a mapping")

        return cls.from_dict(data)


def _parse_tier(data: dict[str, Any]) -> Tier:
    if not isinstance(data, dict) or "code" not in data:
        raise ConfigError(f"invalid auth-tiers entry {data!r}, a code is required")
    try:
        return Tier(
            code=validate_tier_code(str(data["code"])),
            name=str(data.get("name", "")),
            limits=TierLimits(**(data.get("limits") or {})),
        )
    except (AccessControlError, ValueError) as e:
        raise ConfigError(f"invalid auth-tiers entry {data.get('code')!r}: {e}") from e
