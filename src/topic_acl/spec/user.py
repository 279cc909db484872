import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from topic_acl.exceptions import (
    InvalidRoleError,
    InvalidTierCodeError,
    InvalidUsernameError,
)

EVERYONE = "*"
EVERYONE_ALIAS = "everyone"

USERNAME_REGEX = re.compile(r"^[-_.+@a-zA-Z0-9]{1,64}$")
TIER_CODE_REGEX = re.compile(r"^[-_A-Za-z0-9]{1,64}$")


class Role(str, Enum):
    ADMIN = "admin"
    REGULAR = "user"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidRoleError(value) from None

    def __str__(self) -> str:
        return self.value


class TierLimits(BaseModel):
    """Usage limits bundled in a tier. Enforcement happens elsewhere."""

    model_config = ConfigDict(frozen=True)

    messages: int = 0
    emails: int = 0
    calls: int = 0
    reservations: int = 0
    attachment_file_size: int = 0


class Tier(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str = ""
    limits: TierLimits = Field(default_factory=TierLimits)


class UserStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    messages: int = 0
    emails: int = 0
    calls: int = 0

    def __add__(self, other: "UserStats") -> "UserStats":
        return UserStats(
            messages=self.messages + other.messages,
            emails=self.emails + other.emails,
            calls=self.calls + other.calls,
        )

    @property
    def total(self) -> int:
        return self.messages + self.emails + self.calls


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    hash: str = Field(default="", repr=False)
    role: Role = Role.REGULAR
    tier: Tier | None = None
    provisioned: bool = False
    stats: UserStats = Field(default_factory=UserStats)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_everyone(self) -> bool:
        return self.name == EVERYONE


def normalize_username(username: str) -> str:
    """Map the 'everyone' alias onto the anonymous sentinel."""
    if username == EVERYONE_ALIAS:
        return EVERYONE
    return username


def is_reserved_username(username: str) -> bool:
    return username in (EVERYONE, EVERYONE_ALIAS)


def validate_username(username: str) -> str:
    if not USERNAME_REGEX.match(username or ""):
        raise InvalidUsernameError(username)
    return username


def validate_tier_code(code: str) -> str:
    if not TIER_CODE_REGEX.match(code or ""):
        raise InvalidTierCodeError(code)
    return code
