from typing import Iterable

from topic_acl.engine.compiled_grant import CompiledGrant, compile_grant
from topic_acl.spec.grant import Grant


class ACLIndex:
    """Compiled grants per user, each list pre-sorted most specific first."""

    def __init__(self):
        self._grants: dict[str, list[CompiledGrant]] = {}

    @classmethod
    def build(cls, grants: Iterable[Grant]) -> "ACLIndex":
        index = cls()
        for grant in grants:
            index.add_grant(grant)
        return index

    def add_grant(self, grant: Grant) -> None:
        compiled = self._grants.setdefault(grant.user, [])
        compiled[:] = [c for c in compiled if c.grant.key != grant.key]
        compiled.append(compile_grant(grant))
        compiled.sort(key=lambda c: c.sort_key, reverse=True)

    def get_compiled_grant(self, user: str, topic: str) -> CompiledGrant | None:
        """Return the most specific grant of user matching topic."""
        # lists are already sorted, so we can return the first match
        for compiled in self._grants.get(user, []):
            if compiled.match(topic):
                return compiled
        return None
