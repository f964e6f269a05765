# src/syspoints_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .establishments import router as establishments_router
from .points import admin_router, config_router
from .reviews import router as reviews_router
from .users import router as users_router

__all__ = [
    "admin_router",
    "auth_router",
    "config_router",
    "establishments_router",
    "reviews_router",
    "users_router",
]
