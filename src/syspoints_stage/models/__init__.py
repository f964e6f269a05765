# src/syspoints_stage/models/__init__.py
"""SQLAlchemy models for the Syspoints application."""

from .auth import AuthNonce, AuthSession
from .establishment import Establishment
from .idempotency import IdempotencyKey
from .points_config import PointsConfig
from .review import Review, ReviewAnchor, ReviewEvidence
from .user import User, Wallet

__all__ = [
    "AuthNonce", "AuthSession",
    "Establishment",
    "IdempotencyKey",
    "PointsConfig",
    "Review", "ReviewAnchor", "ReviewEvidence",
    "User", "Wallet",
]
