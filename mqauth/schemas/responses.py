"""Response envelope and user views returned by the admin API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from mqauth.schemas.users import Topic, User


class ApiResponse(BaseModel):
    """Standard success envelope; `token` echoes the caller's session token."""

    status: Literal["ok"] = "ok"
    message: str = ""
    data: Any = None
    token: str = ""


class UserListItem(BaseModel):
    """User entry for listings (no password, no topics)."""

    username: str
    admin: bool


class PublicUser(BaseModel):
    """A user as returned to clients: everything except the password hash."""

    model_config = {"populate_by_name": True}

    username: str
    admin: bool
    token: str = ""
    topics: list[Topic] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createTS")
    updated_at: datetime | None = Field(default=None, alias="updateTS")

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            username=user.username,
            admin=user.admin,
            token=user.token,
            topics=user.topics,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserTopics(BaseModel):
    username: str
    topics: list[Topic]


class UserTopic(BaseModel):
    username: str
    topic: Topic
