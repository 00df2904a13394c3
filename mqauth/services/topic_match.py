"""Hierarchical topic filter matching with MQTT-style `+` and `#` wildcards."""

SEPARATOR = "/"
SINGLE_LEVEL = "+"
MULTI_LEVEL = "#"


def _strip_trailing_separator(value: str) -> str:
    # A trailing "/" is a common input error and never meaningful; drop one.
    if value.endswith(SEPARATOR):
        return value[:-1]
    return value


def topic_matches(topic: str, pattern: str) -> bool:
    """
    Return True when the concrete topic is covered by the permission pattern.

    `+` matches exactly one level (an empty level included, never a "/"), and `#`
    matches the rest of the topic at any depth, including no further levels.
    A pattern with more levels than the topic does not match.
    """
    topic = _strip_trailing_separator(topic)
    pattern = _strip_trailing_separator(pattern)
    if topic == pattern or pattern == MULTI_LEVEL:
        return True

    topic_levels = topic.split(SEPARATOR)
    filter_levels = pattern.split(SEPARATOR)

    pos = 0
    for level in topic_levels:
        if pos >= len(filter_levels):
            return False
        current = filter_levels[pos]
        if current == MULTI_LEVEL:
            return True
        if current != SINGLE_LEVEL and current != level:
            return False
        pos += 1

    remaining = filter_levels[pos:]
    if not remaining:
        return True
    # "a/#" also covers "a" itself.
    return remaining == [MULTI_LEVEL]
