# src/syspoints_stage/utils/validation.py
"""Field validators for user-submitted review content.

Every helper raises :class:`ValidationError` with a client-facing message.
"""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from syspoints_stage.core.errors import ValidationError

HEX32_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
TAG_PATTERN = re.compile(r"^[^\W_][\w\s.\-]*$")
TAG_MIN_CHARS = 2
TAG_MAX_CHARS = 30
# Matches the reviews.price column, Numeric(14, 4).
PRICE_MAX_DECIMALS = 4
PRICE_MAX_INTEGER_DIGITS = 10

_HTML_PATTERN = re.compile(r"<[^>]*>|javascript:|\bon\w+\s*=", re.IGNORECASE)


def parse_uuid(field: str, value: object) -> uuid.UUID:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a UUID")
    try:
        return uuid.UUID(value.strip())
    except ValueError as err:
        raise ValidationError(f"{field} must be a UUID") from err


def require_hex32(field: str, value: object, message: str) -> str:
    if not isinstance(value, str) or HEX32_PATTERN.match(value) is None:
        raise ValidationError(message)
    return value.lower()


def parse_datetime(field: str, value: object) -> datetime:
    """Parse an ISO-8601 datetime; naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a valid datetime")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as err:
        raise ValidationError(f"{field} must be a valid datetime") from err
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def is_http_url(value: object) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def safe_text(field: str, value: object, *, min_length: int = 1, max_length: int = 2000) -> str:
    """Trim ``value`` and reject markup, empty or oversized text."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    normalized = value.strip()
    if len(normalized) < min_length:
        raise ValidationError(f"{field} is too short")
    if len(normalized) > max_length:
        raise ValidationError(f"{field} exceeds max length of {max_length}")
    if _HTML_PATTERN.search(normalized):
        raise ValidationError(f"{field} must not contain HTML or script-like content")
    return normalized


def normalize_tags(tags: object, *, max_tags: int) -> list[str]:
    """Validate tags and drop case-insensitive duplicates, keeping first spelling."""
    if not isinstance(tags, list) or not tags:
        raise ValidationError("tags must be a non-empty array")

    seen: dict[str, str] = {}
    for raw in tags:
        if not isinstance(raw, str):
            raise ValidationError("each tag must be a string")
        tag = safe_text("tag", raw, min_length=TAG_MIN_CHARS, max_length=TAG_MAX_CHARS)
        if TAG_PATTERN.match(tag) is None:
            raise ValidationError(
                "tags may only contain letters, numbers, spaces, dots, underscores, and hyphens"
            )
        seen.setdefault(tag.lower(), tag)

    normalized = list(seen.values())
    if len(normalized) > max_tags:
        raise ValidationError(f"at most {max_tags} tags are allowed")
    return normalized


def positive_price(value: object) -> Decimal:
    """Parse a price that the ``Numeric(14, 4)`` column stores without rounding."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise ValidationError("price must be greater than 0")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as err:
        raise ValidationError("price must be greater than 0") from err
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("price must be greater than 0")
    if amount.normalize().as_tuple().exponent < -PRICE_MAX_DECIMALS:
        raise ValidationError(f"price must have at most {PRICE_MAX_DECIMALS} decimal places")
    if amount.adjusted() >= PRICE_MAX_INTEGER_DIGITS:
        raise ValidationError(f"price must have at most {PRICE_MAX_INTEGER_DIGITS} integer digits")
    return amount
