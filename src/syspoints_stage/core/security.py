"""Bearer token helpers built on python-jose."""
from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from syspoints_stage.core.errors import AuthenticationError, ConfigurationError
from syspoints_stage.core.settings import settings

_DURATION_PATTERN = re.compile(r"^(\d+)([smhd]?)$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


def parse_duration(value: str | int | None) -> int:
    """Convert ``Ns/Nm/Nh/Nd`` or bare seconds into a number of seconds.

    Empty values fall back to one hour.
    """
    if value is None:
        return DEFAULT_TOKEN_LIFETIME_SECONDS
    if isinstance(value, int):
        if value <= 0:
            raise ConfigurationError("Token lifetime must be positive")
        return value
    cleaned = value.strip().lower()
    if not cleaned:
        return DEFAULT_TOKEN_LIFETIME_SECONDS
    match = _DURATION_PATTERN.match(cleaned)
    if match is None:
        raise ConfigurationError(f"Invalid token lifetime: {value!r}")
    seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    if seconds <= 0:
        raise ConfigurationError("Token lifetime must be positive")
    return seconds


def token_lifetime() -> timedelta:
    """Return the configured access token lifetime."""
    return timedelta(seconds=parse_duration(settings.jwt_expires_in))


def create_access_token(claims: dict[str, Any], *, issued_at: datetime, expires_at: datetime) -> str:
    """Sign a bearer token embedding ``claims`` plus ``iat``/``exp``."""
    to_encode: dict[str, Any] = dict(claims)
    to_encode["iat"] = int(issued_at.timestamp())
    to_encode["exp"] = int(expires_at.timestamp())
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.require_jwt_secret(),
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry of a bearer token and return its claims.

    Raises:
        AuthenticationError: If the token is malformed, forged or expired.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.require_jwt_secret(),
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise AuthenticationError("invalid token") from err
    return payload
