"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    storage: Literal["json", "postgres"] = Field(description="Backend holding users and grants")
    user_count: int = Field(ge=0, description="Users currently held in the cache")
    database: Literal["connected", "disconnected"] | None = Field(
        default=None,
        description="Database connectivity status; only for the postgres backend",
    )
