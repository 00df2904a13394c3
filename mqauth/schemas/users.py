"""User and Topic models: the authorization cache entries and their stored shape."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from mqauth.core.exceptions import InvalidInputError


class Topic(BaseModel):
    """A permission grant on a topic pattern (not a live subscription)."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    pattern: str = Field(
        ...,
        alias="topicstring",
        description="Topic filter; levels separated by '/', may contain '+' or '#'.",
    )
    can_publish: bool = Field(default=False, alias="pub", description="Publish right.")
    can_subscribe: bool = Field(default=False, alias="sub", description="Subscribe right.")


class User(BaseModel):
    """
    A broker client account with its topic grants.

    Field aliases are the stable names used in the JSON file and in API payloads.
    `password` holds a bcrypt hash once the user has been stored.
    """

    model_config = {"populate_by_name": True, "extra": "ignore"}

    username: str = Field(default="", description="Unique key; immutable after creation.")
    password: str = Field(default="", description="Password hash (plain text only on input).")
    admin: bool = Field(default=False, description="Administrator flag.")
    created_at: datetime | None = Field(default=None, alias="createTS")
    updated_at: datetime | None = Field(default=None, alias="updateTS")
    token: str = Field(default="", description="Current session token; empty without a session.")
    topics: list[Topic] = Field(default_factory=list)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def blank_timestamp_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("topics", mode="before")
    @classmethod
    def null_topics_is_empty(cls, v: object) -> object:
        return [] if v is None else v

    def find_topic(self, pattern: str) -> int | None:
        """Return the index of the grant with this exact pattern, or None."""
        for i, topic in enumerate(self.topics):
            if topic.pattern == pattern:
                return i
        return None


def validate_topic(topic: Topic) -> Topic:
    """Check a grant before it is added or edited through the store."""
    if not topic.pattern:
        raise InvalidInputError("Topic cannot be blank")
    if topic.pattern.endswith("/"):
        raise InvalidInputError("Topic cannot end with a /")
    if not topic.can_publish and not topic.can_subscribe:
        raise InvalidInputError("Pub and Sub cannot both be false")
    return topic
