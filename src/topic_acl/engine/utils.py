from topic_acl.engine.matchers import PATTERN_REGEX, is_wildcard


def specificity_key(pattern: str) -> tuple[int, int]:
    """Higher tuple = more specific. Used to sort grants so most specific wins.

    The first element is the length of the literal (non-wildcard) prefix, which
    for a matching grant equals the prefix it shares with the topic. Exact
    patterns outrank wildcard patterns of the same literal length.
    """
    if is_wildcard(pattern) and PATTERN_REGEX.match(pattern):
        return (len(pattern) - 1, 0)
    return (len(pattern), 1)
