# src/syspoints_stage/utils/hash.py
"""Canonical content-address hashes for reviews and establishments.

Both digests are Keccak-256 so the contract, the browser client and this
service can recompute them independently:

* review:        keccak256(abi.encode(string, string, string, string, string))
  over (review_id, user_id, establishment_id, timestamp, price)
* establishment: keccak256(bytes(establishment_id))
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from eth_abi import encode as abi_encode
from eth_utils import keccak

REVIEW_HASH_TYPES = ("string", "string", "string", "string", "string")


def _to_hex(digest: bytes) -> str:
    return "0x" + digest.hex()


def canonical_timestamp(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def canonical_price(value: Decimal | int | float | str) -> str:
    """Render a price without exponent or trailing zeros (``50``, ``12.5``)."""
    if isinstance(value, bool):
        raise TypeError("price must be numeric")
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError("price must be finite")
    text = format(amount.normalize(), "f")
    return "0" if text in ("-0", "") else text


def hash_review(
    review_id: str,
    user_id: str,
    establishment_id: str,
    timestamp_iso8601: str,
    price: str,
) -> str:
    """Return the 0x-prefixed Keccak-256 digest of a review payload."""
    values = (review_id, user_id, establishment_id, timestamp_iso8601, price)
    for value in values:
        if not isinstance(value, str):
            raise TypeError("review hash inputs must be strings")
    return _to_hex(keccak(abi_encode(list(REVIEW_HASH_TYPES), list(values))))


def hash_establishment(establishment_id: str) -> str:
    """Return the 0x-prefixed Keccak-256 digest of an establishment id."""
    if not isinstance(establishment_id, str):
        raise TypeError("establishment id must be a string")
    return _to_hex(keccak(establishment_id.encode("utf-8")))
