# src/syspoints_stage/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import NonceRequest, NonceResponse, SessionResponse, TokenRequest, TokenResponse
from .establishment import EstablishmentCreate, EstablishmentResponse
from .points import PointsConfigResponse, PointsConfigUpdate
from .review import ReviewChainStatusResponse, ReviewCreate, ReviewResponse
from .user import UserCreate, UserSummary

__all__ = [
    "NonceRequest", "NonceResponse", "SessionResponse", "TokenRequest", "TokenResponse",
    "EstablishmentCreate", "EstablishmentResponse",
    "PointsConfigResponse", "PointsConfigUpdate",
    "ReviewChainStatusResponse", "ReviewCreate", "ReviewResponse",
    "UserCreate", "UserSummary",
]
