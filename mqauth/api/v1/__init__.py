"""API v1 routes."""

from fastapi import APIRouter

from mqauth.api.v1 import broker, health, topics, users

router = APIRouter()
router.include_router(broker.router, tags=["broker"])
router.include_router(users.router, tags=["users"])
router.include_router(topics.router, tags=["topics"])
router.include_router(health.router, tags=["health"])
