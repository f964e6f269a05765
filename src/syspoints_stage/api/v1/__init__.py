# src/syspoints_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    auth_router,
    config_router,
    establishments_router,
    reviews_router,
    users_router,
)

__all__ = [
    "admin_router",
    "auth_router",
    "config_router",
    "establishments_router",
    "reviews_router",
    "users_router",
]
