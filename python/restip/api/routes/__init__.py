"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from restip.api.routes.health import router as health_router
from restip.api.routes.messages import router as messages_router
from restip.api.routes.users import router as users_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(users_router, tags=["users"])
    api_router.include_router(messages_router, tags=["messages"])
    return api_router


__all__ = ["create_api_router"]
