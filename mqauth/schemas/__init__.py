"""Pydantic request/response schemas."""

from mqauth.schemas.health import HealthResponse
from mqauth.schemas.responses import (
    ApiResponse,
    PublicUser,
    UserListItem,
    UserTopic,
    UserTopics,
)
from mqauth.schemas.users import Topic, User, validate_topic

__all__ = [
    "ApiResponse",
    "HealthResponse",
    "PublicUser",
    "Topic",
    "User",
    "UserListItem",
    "UserTopic",
    "UserTopics",
    "validate_topic",
]
