"""Domain error taxonomy shared by services and the HTTP layer.

Every error carries the HTTP status it maps to; the exception handlers in
``syspoints_stage.main`` render them as ``{"error": {"message": ...}}``.
"""

from __future__ import annotations


class SyspointsError(RuntimeError):
    """Base exception for all domain failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SyspointsError):
    """Malformed or missing input."""

    status_code = 400


class AuthenticationError(SyspointsError):
    """Missing, invalid or expired bearer token, or a revoked session."""

    status_code = 401


class AuthorizationError(SyspointsError):
    """Authenticated caller lacks the required role or ownership."""

    status_code = 403


class NotFoundError(SyspointsError):
    """Referenced establishment, review or user does not exist."""

    status_code = 404


class ConflictError(SyspointsError):
    """Uniqueness violation on review id, review hash or tx hash."""

    status_code = 409


class ChainVerificationError(SyspointsError):
    """On-chain proof does not match the claimed payload.

    Surfaced to clients as a 400 with the mismatch reason embedded.
    """

    status_code = 400

    def __init__(self, reason: str) -> None:
        super().__init__(f"chain verification failed: {reason}")
        self.reason = reason


class ConfigurationError(SyspointsError):
    """Missing server-side secret or points configuration."""

    status_code = 500
