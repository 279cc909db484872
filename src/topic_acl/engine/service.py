from dataclasses import dataclass, field

from topic_acl.engine.compiled_grant import CompiledGrant
from topic_acl.engine.index import ACLIndex
from topic_acl.spec.permission import Permission
from topic_acl.spec.user import EVERYONE, normalize_username


@dataclass
class ACLService:
    """Resolves the effective permission of an identity on a topic.

    Precedence: admin override, then the most specific matching grant of the
    caller or of the anonymous sentinel, then the default access.
    """

    default_access: Permission = Permission.READ_WRITE
    index: ACLIndex = field(default_factory=ACLIndex)
    admins: frozenset[str] = frozenset()
    known_users: frozenset[str] = frozenset()

    def resolve(self, identity: str, topic: str) -> Permission:
        identity = normalize_username(identity or "")
        if identity not in self.known_users:
            identity = EVERYONE

        if identity in self.admins:
            return Permission.READ_WRITE

        best = self._best_match(identity, topic)
        if best is None:
            return self.default_access
        return best.permission

    def can_read(self, identity: str, topic: str) -> bool:
        return self.resolve(identity, topic).can_read

    def can_write(self, identity: str, topic: str) -> bool:
        return self.resolve(identity, topic).can_write

    def _best_match(self, identity: str, topic: str) -> CompiledGrant | None:
        own = None
        if identity != EVERYONE:
            own = self.index.get_compiled_grant(identity, topic)
        anonymous = self.index.get_compiled_grant(EVERYONE, topic)

        if own is None or anonymous is None:
            return own or anonymous
        # On equal specificity the caller's own grant shadows the anonymous one
        if anonymous.specificity > own.specificity:
            return anonymous
        return own
