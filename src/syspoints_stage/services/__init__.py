# src/syspoints_stage/services/__init__.py
"""Business logic services for the Syspoints application."""

from .auth import AuthService
from .chain import ChainStatusReader, ChainVerifier
from .reviews import ReviewService

__all__ = [
    "AuthService",
    "ChainStatusReader",
    "ChainVerifier",
    "ReviewService",
]
