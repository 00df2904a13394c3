"""Per-user topic authorization built on the topic matcher."""

from enum import Enum
from typing import NamedTuple

from mqauth.core.exceptions import TopicNotFoundError
from mqauth.schemas.users import User
from mqauth.services.topic_match import MULTI_LEVEL, SINGLE_LEVEL, topic_matches


class Access(str, Enum):
    SUBSCRIBE = "sub"
    PUBLISH = "pub"


class TopicAuth(NamedTuple):
    can_publish: bool
    can_subscribe: bool
    matched: bool


def check_topic_auth(user: User, topic: str) -> TopicAuth:
    """
    Evaluate every grant the user holds against a concrete topic.

    Rights are OR-ed across all matching patterns. `matched` is False only when
    no pattern matched at all, which callers report as "not found" rather than
    "no rights".
    """
    can_publish = False
    can_subscribe = False
    matched = False
    for grant in user.topics:
        if topic_matches(topic, grant.pattern):
            matched = True
            can_publish = can_publish or grant.can_publish
            can_subscribe = can_subscribe or grant.can_subscribe
    return TopicAuth(can_publish, can_subscribe, matched)


def is_wildcard_topic(topic: str) -> bool:
    return MULTI_LEVEL in topic or SINGLE_LEVEL in topic


def authorize(user: User, topic: str, access: Access) -> bool:
    """
    Answer a broker ACL query. Raises TopicNotFoundError when nothing matched.

    Publish targets must be concrete: a topic containing a wildcard is never
    allowed for publish, whatever the grants say.
    """
    auth = check_topic_auth(user, topic)
    if not auth.matched:
        raise TopicNotFoundError(topic)
    if access == Access.SUBSCRIBE:
        return auth.can_subscribe
    return auth.can_publish and not is_wildcard_topic(topic)
