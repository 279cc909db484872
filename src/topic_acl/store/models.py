"""
Persisted document layout for the access-control store.

The whole store is a single JSON document:
- users: registered users keyed by name (the anonymous sentinel is implicit)
- grants: one entry per (user, topic pattern) pair
- tiers: registered tiers keyed by code
- next_seq: monotonic counter stamped on grants as they are written
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from topic_acl.spec.grant import Grant
from topic_acl.spec.user import Role, Tier, UserStats

STORE_VERSION = 1


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(BaseModel):
    name: str
    hash: str
    role: Role = Role.REGULAR
    tier_code: str | None = None
    provisioned: bool = False
    stats: UserStats = Field(default_factory=UserStats)
    created_at: datetime = Field(default_factory=_now)


class StoreState(BaseModel):
    version: int = STORE_VERSION
    next_seq: int = 1
    users: dict[str, UserRecord] = Field(default_factory=dict)
    grants: list[Grant] = Field(default_factory=list)
    tiers: dict[str, Tier] = Field(default_factory=dict)

    def take_seq(self) -> int:
        seq = self.next_seq
        self.next_seq += 1
        return seq
