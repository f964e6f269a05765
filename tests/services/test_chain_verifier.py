# mypy: ignore-errors
"""Tests for anchored-transaction verification and status reads."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from syspoints_stage.core.errors import ConfigurationError
from syspoints_stage.core.settings import settings
from syspoints_stage.services.chain import (
    REVIEW_STATUS_APPROVED,
    REVIEW_STATUS_PENDING,
    ChainStatusReader,
    ChainVerifier,
)
from syspoints_stage.utils.hash import hash_review
from tests.conftest import TEST_CHAIN_ID, FakeWeb3

USER = "0x8ba1f109551bD432803012645Ac136ddd64DBA72"
OTHER_USER = "0xAb5801a7D398351b8bE11C439e05C5B3259aeC9B"
ESTABLISHMENT_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"
REVIEW_HASH = hash_review(
    "6f1c2a7e-3b5d-4c8e-9a1f-0d2e3f4a5b6c",
    "0b9d8c7a-6e5f-4a3b-8c2d-1e0f9a8b7c6d",
    ESTABLISHMENT_ID,
    "2026-10-19T12:30:45.123Z",
    "50",
)
TX_HASH = "0x" + "ab" * 32


@pytest.fixture()
def web3() -> FakeWeb3:
    fake = FakeWeb3()
    fake.add_anchor(
        TX_HASH,
        user_wallet=USER,
        review_hash=REVIEW_HASH,
        establishment_id=ESTABLISHMENT_ID,
        block_number=77,
        block_timestamp=1_760_000_000,
    )
    return fake


def _verify(web3, **overrides):
    args = {
        "tx_hash": TX_HASH,
        "expected_user_wallet": USER,
        "expected_review_hash": REVIEW_HASH,
        "expected_establishment_id": ESTABLISHMENT_ID,
    }
    args.update(overrides)
    return ChainVerifier(web3).verify_anchored_tx(**args)


def test_matching_anchor_is_accepted(web3) -> None:
    result = _verify(web3)
    assert result.ok is True
    assert result.reason is None
    assert result.chain_id == TEST_CHAIN_ID
    assert result.block_number == 77
    assert result.block_timestamp == datetime.fromtimestamp(1_760_000_000, tz=UTC)


def test_wallet_comparison_is_case_insensitive(web3) -> None:
    assert _verify(web3, expected_user_wallet=USER.lower()).ok is True
    assert _verify(web3, expected_review_hash=REVIEW_HASH.upper().replace("0X", "0x")).ok is True


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"expected_user_wallet": OTHER_USER}, "matching ReviewAnchored event not found"),
        ({"expected_review_hash": "0x" + "11" * 32}, "matching ReviewAnchored event not found"),
        (
            {"expected_establishment_id": "00000000-0000-4000-8000-000000000000"},
            "matching ReviewAnchored event not found",
        ),
        ({"tx_hash": "0x" + "cd" * 32}, "transaction receipt not found yet"),
        ({"tx_hash": ""}, "missing verification parameters"),
    ],
)
def test_mismatches_are_rejected(web3, overrides, reason: str) -> None:
    result = _verify(web3, **overrides)
    assert result.ok is False
    assert result.reason == reason


def test_failed_transaction_is_rejected(web3) -> None:
    web3.eth.receipts[TX_HASH]["status"] = 0
    assert _verify(web3).reason == "transaction not successful"


def test_wrong_target_contract_is_rejected(web3) -> None:
    web3.eth.receipts[TX_HASH]["to"] = OTHER_USER
    assert _verify(web3).reason == "transaction target contract mismatch"


def test_event_from_other_contract_is_ignored(web3) -> None:
    web3.eth.receipts[TX_HASH]["logs"][0]["address"] = OTHER_USER
    assert _verify(web3).reason == "matching ReviewAnchored event not found"


def test_chain_id_is_a_hard_gate(web3) -> None:
    web3.eth.chain_id = TEST_CHAIN_ID + 1
    result = _verify(web3)
    assert result.ok is False
    assert result.reason == "chain id mismatch"


def test_rpc_failure_is_not_ok(web3) -> None:
    web3.eth.receipt_error = ConnectionError("connection refused")
    result = _verify(web3)
    assert result.ok is False
    assert result.reason == "rpc unavailable"


def test_missing_contract_address_is_configuration_error(web3, monkeypatch) -> None:
    monkeypatch.setattr(settings, "contract_address", None)
    with pytest.raises(ConfigurationError):
        _verify(web3)


def test_status_reader_uses_first_healthy_provider() -> None:
    broken = FakeWeb3()
    broken.eth.status_error = ConnectionError("primary down")
    healthy = FakeWeb3()
    healthy.eth.statuses[REVIEW_HASH] = REVIEW_STATUS_APPROVED

    status = ChainStatusReader([broken, healthy]).get_review_status(REVIEW_HASH)

    assert status.ok is True
    assert status.status == REVIEW_STATUS_APPROVED
    assert status.is_approved is True
    assert status.is_pending is False


def test_status_reader_prefers_primary() -> None:
    primary = FakeWeb3()
    primary.eth.statuses[REVIEW_HASH] = REVIEW_STATUS_PENDING
    fallback = FakeWeb3()
    fallback.eth.statuses[REVIEW_HASH] = REVIEW_STATUS_APPROVED

    status = ChainStatusReader([primary, fallback]).get_review_status(REVIEW_HASH)

    assert status.is_pending is True


def test_status_reader_surfaces_last_error() -> None:
    first = FakeWeb3()
    first.eth.status_error = ConnectionError("first down")
    second = FakeWeb3()
    second.eth.status_error = TimeoutError("second timed out")

    status = ChainStatusReader([first, second]).get_review_status(REVIEW_HASH)

    assert status.ok is False
    assert status.reason == "second timed out"
