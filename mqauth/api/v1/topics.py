"""Topic grant administration and topic authorization checks."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from mqauth.api.v1.deps import (
    SentValues,
    get_current_user,
    get_sent_values,
    get_store,
    http_error,
    is_truthy,
    require_admin,
    require_self_or_admin,
)
from mqauth.core.exceptions import AuthStoreError
from mqauth.schemas.responses import ApiResponse, UserTopic, UserTopics
from mqauth.schemas.users import Topic, User
from mqauth.services.authorization import Access, authorize
from mqauth.store import UserStore

router = APIRouter()


def _topic_from_values(values: SentValues) -> Topic:
    return Topic(
        pattern=values.get("topicstring"),
        can_publish=is_truthy(values.get("pub")),
        can_subscribe=is_truthy(values.get("sub")),
    )


@router.api_route("/addusertopic/{username}", methods=["GET", "POST"], response_model=ApiResponse)
def add_user_topic(
    username: str,
    admin: Annotated[User, Depends(require_admin)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    """Grant `topicstring` with `pub`/`sub` rights ("1" or "true") to a user (admin only)."""
    try:
        store.add_topic_to_user(username, _topic_from_values(values))
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="Topic added", token=admin.token)


@router.api_route("/editusertopic/{username}", methods=["GET", "POST"], response_model=ApiResponse)
def edit_user_topic(
    username: str,
    admin: Annotated[User, Depends(require_admin)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    try:
        store.edit_topic_for_user(username, _topic_from_values(values))
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="Topic modified", token=admin.token)


@router.api_route("/deletetopic", methods=["GET", "DELETE"], response_model=ApiResponse)
def delete_topic(
    admin: Annotated[User, Depends(require_admin)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    pattern = values.get("topic")
    username = values.get("username")
    if not pattern or not username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Must provide a username and a topic",
        )
    try:
        store.delete_topic_from_user(username, pattern)
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="Topics deleted", token=admin.token)


@router.get("/topics/{username}", response_model=ApiResponse)
def user_topics(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    """
    List a user's grants, or return the single grant whose pattern equals `topic`.
    Users may read their own grants; admins may read anyone's.
    """
    require_self_or_admin(current_user, username)
    try:
        user = store.get_user_by_username(username)
    except AuthStoreError as e:
        raise http_error(e) from e

    pattern = values.get("topic")
    if not pattern:
        return ApiResponse(
            message="ok",
            data=UserTopics(username=user.username, topics=user.topics),
            token=current_user.token,
        )
    i = user.find_topic(pattern)
    if i is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="topic not found")
    return ApiResponse(
        message="ok",
        data=UserTopic(username=user.username, topic=user.topics[i]),
        token=current_user.token,
    )


@router.api_route("/checkTopicAuth", methods=["GET", "POST"], response_model=ApiResponse)
def check_topic_auth(
    current_user: Annotated[User, Depends(get_current_user)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    """Report whether `username` may `pub` or `sub` on a concrete `topic`."""
    username = values.get("username")
    topic = values.get("topic")
    access = values.get("access")
    if not username or not topic or not access:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You must provide a username, topic, and access type to check",
        )
    require_self_or_admin(current_user, username)
    try:
        kind = Access(access)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The access type must be 'pub' or 'sub'",
        )
    try:
        user = store.get_user_by_username(username)
        allowed = authorize(user, topic, kind)
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="ok", data=allowed, token=current_user.token)
