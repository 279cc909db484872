import re
from typing import Protocol

from wcmatch import fnmatch

from topic_acl.exceptions import InvalidPatternError

WILDCARD = "*"
MAX_PATTERN_LENGTH = 64

# Literal topic characters, optionally followed by a single trailing wildcard
PATTERN_REGEX = re.compile(r"^[-_A-Za-z0-9]*\*?$")


class Matcher(Protocol):
    pattern: str

    def match(self, topic: str) -> bool: ...


class ExactMatcher:
    def __init__(self, pattern: str):
        self.pattern = pattern

    def match(self, topic: str) -> bool:
        return topic == self.pattern


class PrefixMatcher:
    """Matches topics sharing the literal prefix before the trailing wildcard."""

    def __init__(self, pattern: str):
        self.pattern = pattern

    def match(self, topic: str) -> bool:
        return fnmatch.fnmatch(
            topic, self.pattern, flags=fnmatch.CASE | fnmatch.DOTMATCH
        )


def is_wildcard(pattern: str) -> bool:
    return pattern.endswith(WILDCARD)


def validate_pattern(pattern: str) -> str:
    if not pattern:
        raise InvalidPatternError(pattern, "pattern is empty")
    if len(pattern) > MAX_PATTERN_LENGTH:
        raise InvalidPatternError(
            pattern, f"longer than {MAX_PATTERN_LENGTH} characters"
        )
    if not PATTERN_REGEX.match(pattern):
        raise InvalidPatternError(
            pattern, "only [-_A-Za-z0-9] and one trailing '*' are allowed"
        )
    return pattern


def create_matcher(pattern: str) -> Matcher:
    # Anything but a well-formed trailing wildcard is compared literally
    if is_wildcard(pattern) and PATTERN_REGEX.match(pattern):
        return PrefixMatcher(pattern)
    return ExactMatcher(pattern)


def matches(pattern: str, topic: str) -> bool:
    """Return True if topic is covered by pattern."""
    return create_matcher(pattern).match(topic)
