"""Health check endpoint with database connectivity check for the SQL backend."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from mqauth.api.v1.deps import get_store
from mqauth.core.database import check_db_connected
from mqauth.schemas.health import HealthResponse
from mqauth.store import SqlUserStore, UserStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def get_health(
    request: Request,
    store: Annotated[UserStore, Depends(get_store)],
) -> HealthResponse:
    """
    Return service health, the storage backend in use and, for Postgres,
    database connectivity. Used by load balancers and monitoring.
    """
    database = None
    storage = "json"
    if isinstance(store, SqlUserStore):
        storage = "postgres"
        database = "connected" if check_db_connected(store.engine) else "disconnected"

    return HealthResponse(
        status="ok",
        environment=request.app.state.settings.APP_ENV,
        storage=storage,
        user_count=len(store.get_users()),
        database=database,
    )
