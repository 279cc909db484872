from topic_acl.engine.matchers import Matcher, create_matcher
from topic_acl.engine.utils import specificity_key
from topic_acl.spec.grant import Grant
from topic_acl.spec.permission import Permission


class CompiledGrant:
    def __init__(self, grant: Grant, matcher: Matcher):
        self.grant = grant
        self.matcher = matcher
        self.specificity = specificity_key(grant.topic_pattern)

    @property
    def permission(self) -> Permission:
        return self.grant.permission

    @property
    def sort_key(self) -> tuple[int, int, int]:
        return (*self.specificity, self.grant.seq)

    def match(self, topic: str) -> bool:
        return self.matcher.match(topic)


def compile_grant(grant: Grant) -> CompiledGrant:
    return CompiledGrant(grant=grant, matcher=create_matcher(grant.topic_pattern))
