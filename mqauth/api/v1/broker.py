"""HTTP auth hooks called by the MQTT broker: connect authentication and topic ACL checks."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from mqauth.api.v1.deps import SentValues, get_sent_values, get_store
from mqauth.core.exceptions import InvalidCredentialsError, NotFoundError
from mqauth.services.authorization import Access, authorize
from mqauth.store import UserStore

logger = logging.getLogger(__name__)
router = APIRouter()

# Access codes sent by the broker on ACL checks.
BROKER_ACCESS = {
    "1": Access.SUBSCRIBE,
    "2": Access.PUBLISH,
}


@router.api_route("/auth", methods=["GET", "POST"])
def broker_auth(
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> Response:
    """Authenticate a connecting client: 200 if the credentials verify, 401 otherwise."""
    username = values.get("username")
    password = values.get("password")
    if not username or not password:
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        store.login(username, password, issue_token=False)
    except (NotFoundError, InvalidCredentialsError):
        logger.info("Broker login refused", extra={"username": username})
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)
    return Response(status_code=status.HTTP_200_OK)


@router.api_route("/acl", methods=["GET", "POST"])
def broker_acl(
    values: Annotated[SentValues, Depends(get_sent_values)],
    store: Annotated[UserStore, Depends(get_store)],
) -> Response:
    """
    Check a publish (access=2) or subscribe (access=1) request.

    200 allowed, 204 a grant matched but does not confer the right (or the
    publish target is a wildcard), 404 unknown user or no matching grant.
    """
    access = BROKER_ACCESS.get(values.get("access"))
    if access is None:
        return Response(status_code=status.HTTP_400_BAD_REQUEST)
    username = values.get("username")
    topic = values.get("topic")
    try:
        user = store.get_user_by_username(username)
        allowed = authorize(user, topic, access)
    except NotFoundError:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    if allowed:
        return Response(status_code=status.HTTP_200_OK)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.api_route("/superuser", methods=["GET", "POST"])
def broker_superuser() -> Response:
    """No client is a broker superuser; every request goes through the ACL."""
    return Response(status_code=status.HTTP_403_FORBIDDEN)
