"""Session login and user administration endpoints."""

import logging
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
from mqauth.core.exceptions import AuthStoreError, InvalidCredentialsError, NotFoundError
from mqauth.schemas.responses import ApiResponse, PublicUser, UserListItem
from mqauth.schemas.users import User
from mqauth.store import UserStore

logger = logging.getLogger(__name__)
router = APIRouter()


def _user_from_values(values: SentValues) -> User:
    return User(
        username=values.get("username"),
        password=values.get("password"),
        admin=is_truthy(values.get("admin")),
    )


@router.api_route("/login", methods=["GET", "POST"], response_model=ApiResponse)
def login(
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    """
    Authenticate with username and password and start a new session.
    The returned token replaces any earlier one; send it as X-API-KEY afterwards.
    """
    username = values.get("username")
    password = values.get("password")
    if not username or not password:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Must provide both a user id and password",
        )
    try:
        user = store.login(username, password, issue_token=True)
    except (NotFoundError, InvalidCredentialsError) as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message) from e
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="ok", data=PublicUser.from_user(user), token=user.token)


@router.get("/listusers", response_model=ApiResponse)
def list_users(
    current_user: Annotated[User, Depends(get_current_user)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    """List users, optionally filtered by `user`. Non-admins may only list themselves."""
    user_filter = values.get("user")
    require_self_or_admin(current_user, user_filter)
    items = [
        UserListItem(username=u.username, admin=u.admin)
        for u in store.get_users()
        if not user_filter or u.username == user_filter
    ]
    return ApiResponse(data=items, token=current_user.token)


@router.get("/getuser/{username}", response_model=ApiResponse)
def get_user(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    require_self_or_admin(current_user, username)
    try:
        user = store.get_user_by_username(username)
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(
        data=UserListItem(username=user.username, admin=user.admin),
        token=current_user.token,
    )


@router.api_route("/adduser", methods=["GET", "POST"], response_model=ApiResponse)
def add_user(
    admin: Annotated[User, Depends(require_admin)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    """Create a user from `username`, `password` and `admin` (admin only)."""
    try:
        store.add_user(_user_from_values(values))
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="User Added", token=admin.token)


@router.api_route("/edituser", methods=["GET", "POST"], response_model=ApiResponse)
def edit_user(
    admin: Annotated[User, Depends(require_admin)],
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    """Set the admin flag and, when `password` is non-empty, the password (admin only)."""
    try:
        store.edit_user(_user_from_values(values))
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="User edited", token=admin.token)


@router.api_route("/deleteuser/{username}", methods=["GET", "POST", "DELETE"], response_model=ApiResponse)
def delete_user(
    username: str,
    admin: Annotated[User, Depends(require_admin)],
    store: Annotated[UserStore, Depends(get_store)],
) -> ApiResponse:
    if admin.username == username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete yourself",
        )
    try:
        store.delete_user(username)
    except AuthStoreError as e:
        raise http_error(e) from e
    return ApiResponse(message="users deleted", token=admin.token)
