"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mqauth.api.v1 import router as v1_router
from mqauth.core.config import Settings, get_settings
from mqauth.core.logging_config import configure_logging
from mqauth.store import UserStore, new_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build and load the store at startup unless one was injected."""
    if app.state.store is None:
        store = new_store(app.state.settings)
        store.load()
        app.state.store = store
    yield


def create_app(store: UserStore | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the API around one store instance. Pass a loaded store to share it
    (tests, embedding); otherwise the lifespan builds it from settings.
    """
    settings = settings or get_settings()
    app = FastAPI(
        title="MQTT Auth API",
        version="0.1.0",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["X-Requested-With", "X-API-KEY", "X-Request-Token", "Content-Type"],
    )

    app.include_router(v1_router, prefix=settings.API_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": f"MQTT Auth API - see {settings.API_PREFIX}/docs"}

    return app


configure_logging(get_settings())
app = create_app()


def run() -> None:
    """Serve the API with uvicorn on HOST:PORT (console script `mqauth-serve`)."""
    settings = get_settings()
    logger.info("Starting server", extra={"host": settings.HOST, "port": settings.PORT})
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        timeout_keep_alive=5,
    )


if __name__ == "__main__":
    run()
