# src/syspoints_stage/services/chain.py
"""Ledger access: anchored-transaction verification and review status reads.

Verification is the gate in front of review persistence and talks to the
primary RPC only. Status reads are display-only and walk the primary plus
any fallback endpoints until one answers.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from eth_utils import is_address, keccak, to_checksum_address
from web3 import Web3
from web3.exceptions import TransactionNotFound

from syspoints_stage.core.settings import settings
from syspoints_stage.utils.hash import hash_establishment

logger = logging.getLogger(__name__)

REVIEW_ANCHORED_TOPIC = "0x" + keccak(text="ReviewAnchored(address,bytes32,bytes32,uint256)").hex()

REVIEW_STATUS_NONE = 0
REVIEW_STATUS_PENDING = 1
REVIEW_STATUS_APPROVED = 2
REVIEW_STATUS_REJECTED = 3

REVIEW_STATUS_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"internalType": "bytes32", "name": "reviewHash", "type": "bytes32"}],
        "name": "getReviewStatus",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    }
]


@dataclass(frozen=True)
class AnchorVerification:
    """Outcome of checking a client-supplied anchoring transaction."""

    ok: bool
    reason: str | None = None
    tx_hash: str | None = None
    chain_id: int | None = None
    block_number: int | None = None
    block_timestamp: datetime | None = None


@dataclass(frozen=True)
class ReviewChainStatus:
    """Display-only on-chain moderation status of a review hash."""

    ok: bool
    status: int | None = None
    reason: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == REVIEW_STATUS_PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == REVIEW_STATUS_APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.status == REVIEW_STATUS_REJECTED


def build_web3(url: str) -> Web3:
    """Create an HTTP-backed client honouring the configured RPC timeout."""
    return Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": settings.rpc_timeout_seconds}))


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value or "").lower()
    return text if text.startswith("0x") else "0x" + text


def _topic_address(topic: Any) -> str:
    # Indexed addresses are left-padded to 32 bytes.
    return "0x" + _hex(topic)[-40:]


def _field(record: Any, name: str) -> Any:
    try:
        return record[name]
    except (KeyError, TypeError):
        return getattr(record, name, None)


class ChainVerifier:
    """Check that a transaction anchored exactly the expected review on-chain."""

    def __init__(self, web3: Web3 | None = None) -> None:
        self._web3 = web3

    @property
    def web3(self) -> Web3:
        if self._web3 is None:
            self._web3 = build_web3(settings.require_rpc_url())
        return self._web3

    def verify_anchored_tx(
        self,
        tx_hash: str,
        expected_user_wallet: str,
        expected_review_hash: str,
        expected_establishment_id: str,
    ) -> AnchorVerification:
        """Verify ``tx_hash`` emitted a matching ``ReviewAnchored`` event.

        Never raises for ledger-side problems; those come back as
        ``ok=False`` with a reason. Missing configuration raises
        ``ConfigurationError``.
        """
        if not tx_hash or not expected_user_wallet or not expected_review_hash or not expected_establishment_id:
            return AnchorVerification(ok=False, reason="missing verification parameters")
        if not is_address(expected_user_wallet):
            return AnchorVerification(ok=False, reason="invalid user wallet")

        configured_chain_id = settings.require_chain_id()
        contract_address = settings.require_contract_address().lower()
        web3 = self.web3

        try:
            rpc_chain_id = int(web3.eth.chain_id)
        except Exception as exc:
            logger.warning("RPC chain id lookup failed: %s", exc)
            return AnchorVerification(ok=False, reason="rpc unavailable")
        if rpc_chain_id != configured_chain_id:
            logger.warning(
                "RPC reports chain id %s but %s is configured", rpc_chain_id, configured_chain_id
            )
            return AnchorVerification(ok=False, reason="chain id mismatch")

        try:
            receipt = web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            receipt = None
        except Exception as exc:
            logger.warning("Receipt lookup for %s failed: %s", tx_hash, exc)
            return AnchorVerification(ok=False, reason="rpc unavailable")
        if receipt is None:
            return AnchorVerification(ok=False, reason="transaction receipt not found yet")

        if int(_field(receipt, "status") or 0) != 1:
            return AnchorVerification(ok=False, reason="transaction not successful")
        if str(_field(receipt, "to") or "").lower() != contract_address:
            return AnchorVerification(ok=False, reason="transaction target contract mismatch")

        wanted_user = expected_user_wallet.lower()
        wanted_review = expected_review_hash.lower()
        wanted_establishment = hash_establishment(expected_establishment_id).lower()

        matched = False
        for log in _field(receipt, "logs") or []:
            if str(_field(log, "address") or "").lower() != contract_address:
                continue
            topics = [_hex(topic) for topic in (_field(log, "topics") or [])]
            if len(topics) != 4 or topics[0] != REVIEW_ANCHORED_TOPIC:
                continue
            if (
                _topic_address(topics[1]) == wanted_user
                and topics[2] == wanted_review
                and topics[3] == wanted_establishment
            ):
                matched = True
                break
        if not matched:
            return AnchorVerification(ok=False, reason="matching ReviewAnchored event not found")

        block_number = _field(receipt, "blockNumber")
        block_number = int(block_number) if block_number is not None else None
        return AnchorVerification(
            ok=True,
            tx_hash=tx_hash.lower(),
            chain_id=configured_chain_id,
            block_number=block_number,
            block_timestamp=self._block_timestamp(block_number),
        )

    def _block_timestamp(self, block_number: int | None) -> datetime | None:
        if block_number is None:
            return None
        try:
            block = self.web3.eth.get_block(block_number)
        except Exception as exc:
            logger.warning("Block %s lookup failed: %s", block_number, exc)
            return None
        timestamp = _field(block, "timestamp")
        if timestamp is None:
            return None
        return datetime.fromtimestamp(int(timestamp), tz=UTC)


class ChainStatusReader:
    """Read review status from the contract, falling back across providers."""

    def __init__(self, providers: Sequence[Web3] | None = None) -> None:
        self._providers = list(providers) if providers is not None else None

    @property
    def providers(self) -> list[Web3]:
        if self._providers is None:
            urls = [settings.require_rpc_url(), *settings.rpc_fallback_urls]
            self._providers = [build_web3(url) for url in urls]
        return self._providers

    def get_review_status(self, review_hash: str) -> ReviewChainStatus:
        if not review_hash:
            return ReviewChainStatus(ok=False, reason="review_hash is required")
        contract_address = to_checksum_address(settings.require_contract_address())
        digest = bytes.fromhex(review_hash[2:] if review_hash.startswith("0x") else review_hash)

        last_error = "no rpc providers configured"
        for index, web3 in enumerate(self.providers):
            try:
                contract = web3.eth.contract(address=contract_address, abi=REVIEW_STATUS_ABI)
                status = int(contract.functions.getReviewStatus(digest).call())
            except Exception as exc:
                logger.warning("Review status read via provider %d failed: %s", index, exc)
                last_error = str(exc) or "failed to fetch review status from chain"
                continue
            return ReviewChainStatus(ok=True, status=status)
        return ReviewChainStatus(ok=False, reason=last_error)


def get_chain_verifier() -> ChainVerifier:
    return ChainVerifier()


def get_status_reader() -> ChainStatusReader:
    return ChainStatusReader()
