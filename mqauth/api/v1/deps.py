"""Request parameter extraction, store access and auth dependencies (get_current_user, require_admin)."""

import logging
from collections.abc import Mapping
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status

from mqauth.core.exceptions import (
    AlreadyExistsError,
    AuthStoreError,
    HashingError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from mqauth.schemas.users import User
from mqauth.store import UserStore

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Most specific first; the first isinstance match wins.
STATUS_BY_ERROR: tuple[tuple[type[AuthStoreError], int], ...] = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyExistsError, status.HTTP_409_CONFLICT),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (HashingError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def http_error(e: AuthStoreError) -> HTTPException:
    """Map a store error to the HTTP status the API reports for it."""
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=e.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_truthy(value: str) -> bool:
    return value in ("1", "true")


class SentValues:
    """
    Named request parameters, looked up in order: header (with "_" as "-"),
    query string, form body, JSON body. Missing values are "".
    """

    def __init__(
        self,
        headers: Mapping[str, str],
        query: Mapping[str, str],
        form: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> None:
        self._headers = headers
        self._query = query
        self._form = form or {}
        self._body = body or {}

    def get(self, name: str) -> str:
        for source, key in (
            (self._headers, name.replace("_", "-")),
            (self._query, name),
            (self._form, name),
            (self._body, name),
        ):
            value = _as_text(source.get(key))
            if value:
                return value
        return ""

    def token(self) -> str:
        for source, key in (
            (self._headers, "X-API-KEY"),
            (self._query, "token"),
            (self._headers, "wf-tkn"),
            (self._query, "wf_tkn"),
        ):
            value = source.get(key)
            if value:
                return value
        return ""


async def get_sent_values(request: Request) -> SentValues:
    """Dependency: collect headers, query, and a form or JSON body if one was sent."""
    content_type = request.headers.get("content-type", "")
    form: dict[str, Any] = {}
    body: dict[str, Any] = {}
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = dict(await request.form())
    elif content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Could not read request body",
            )
        if isinstance(payload, dict):
            body = payload
    return SentValues(request.headers, request.query_params, form, body)


def get_store(request: Request) -> UserStore:
    """Dependency: the store instance built at startup."""
    return request.app.state.store


def get_current_user(
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> User:
    """Dependency: require a valid session token and return its user. Raises 401 if missing or invalid."""
    token = values.token()
    if not token:
        logger.info("Token not provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
        )
    try:
        user = store.get_user_by_token(token)
    except NotFoundError:
        logger.info("Token is not valid")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Token",
        )
    except AuthStoreError as e:
        raise http_error(e) from e
    return user


def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency: require authenticated user with the admin flag. Raises 403 for non-admin."""
    if not current_user.admin:
        logger.info("Admin required", extra={"username": current_user.username})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not Admin",
        )
    return current_user


def require_self_or_admin(current_user: User, username: str) -> None:
    """Any user may act on their own record; only admins on someone else's."""
    if not current_user.admin and current_user.username != username:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient rights",
        )
