# mypy: ignore-errors
"""Tests for the canonical review and establishment hashes."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from eth_abi import encode as abi_encode
from eth_utils import keccak

from syspoints_stage.utils import hash as hash_utils

HEX_DIGEST_LENGTH = 66

BASE_FIELDS = (
    "6f1c2a7e-3b5d-4c8e-9a1f-0d2e3f4a5b6c",
    "0b9d8c7a-6e5f-4a3b-8c2d-1e0f9a8b7c6d",
    "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d",
    "2026-10-19T12:30:45.123Z",
    "50",
)


def test_hash_review_is_deterministic() -> None:
    first = hash_utils.hash_review(*BASE_FIELDS)
    second = hash_utils.hash_review(*BASE_FIELDS)
    assert first == second
    assert first.startswith("0x")
    assert len(first) == HEX_DIGEST_LENGTH


@pytest.mark.parametrize("index", range(5))
def test_hash_review_changes_when_any_field_changes(index: int) -> None:
    """Altering a single character of any field yields a different digest."""
    fields = list(BASE_FIELDS)
    fields[index] = fields[index][:-1] + ("0" if fields[index][-1] != "0" else "1")
    assert hash_utils.hash_review(*fields) != hash_utils.hash_review(*BASE_FIELDS)


def test_hash_review_matches_abi_encoded_keccak() -> None:
    expected = "0x" + keccak(abi_encode(["string"] * 5, list(BASE_FIELDS))).hex()
    assert hash_utils.hash_review(*BASE_FIELDS) == expected


def test_hash_review_is_not_plain_concatenation() -> None:
    """Shifting characters between adjacent fields must not collide."""
    shifted = ("ab", "c", *BASE_FIELDS[2:])
    original = ("a", "bc", *BASE_FIELDS[2:])
    assert hash_utils.hash_review(*shifted) != hash_utils.hash_review(*original)


def test_hash_review_rejects_non_string_input() -> None:
    with pytest.raises(TypeError):
        hash_utils.hash_review(BASE_FIELDS[0], BASE_FIELDS[1], BASE_FIELDS[2], BASE_FIELDS[3], 50)


def test_hash_establishment_is_keccak_of_utf8() -> None:
    establishment_id = BASE_FIELDS[2]
    expected = "0x" + keccak(establishment_id.encode("utf-8")).hex()
    assert hash_utils.hash_establishment(establishment_id) == expected


def test_canonical_timestamp_uses_utc_milliseconds() -> None:
    local = datetime(2026, 10, 19, 9, 30, 45, 123456, tzinfo=timezone(timedelta(hours=-3)))
    assert hash_utils.canonical_timestamp(local) == "2026-10-19T12:30:45.123Z"


def test_canonical_timestamp_treats_naive_as_utc() -> None:
    naive = datetime(2026, 1, 2, 3, 4, 5)
    aware = naive.replace(tzinfo=UTC)
    assert hash_utils.canonical_timestamp(naive) == hash_utils.canonical_timestamp(aware)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(50, "50"), (50.0, "50"), (12.5, "12.5"), (Decimal("12.5000"), "12.5"), ("0.10", "0.1")],
)
def test_canonical_price(value, expected: str) -> None:
    assert hash_utils.canonical_price(value) == expected


def test_canonical_price_rejects_bool() -> None:
    with pytest.raises(TypeError):
        hash_utils.canonical_price(True)
