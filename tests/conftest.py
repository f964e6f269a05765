# tests/conftest.py
from __future__ import annotations

import os
import uuid
from collections.abc import Generator, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from web3.exceptions import TransactionNotFound

TEST_CHAIN_ID = 57
TEST_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TEST_DOMAIN = "app.example"
TEST_URI = "https://app.example"

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-syspoints")
os.environ.setdefault("CHAIN_ID", str(TEST_CHAIN_ID))
os.environ.setdefault("CONTRACT_ADDRESS", TEST_CONTRACT_ADDRESS)
os.environ.setdefault("RPC_URL", "http://rpc.invalid")
os.environ.setdefault("SIWE_DOMAIN", TEST_DOMAIN)

from syspoints_stage.api.v1.endpoints import reviews as reviews_endpoints
from syspoints_stage.db.session import Base
from syspoints_stage.db.session import get_db as app_get_session
from syspoints_stage.main import app as fastapi_app
from syspoints_stage.models import Establishment, PointsConfig, User, Wallet
from syspoints_stage.models.user import ROLE_ADMIN
from syspoints_stage.services.auth import AuthService
from syspoints_stage.services.chain import (
    REVIEW_ANCHORED_TOPIC,
    ChainStatusReader,
    ChainVerifier,
)
from syspoints_stage.services.reviews import clear_idempotency_cache
from syspoints_stage.utils.hash import canonical_price, hash_establishment, hash_review

TEST_DB_URL = "sqlite://"

EXAMPLE_POINTS_CONFIG = {
    "image_points_yes": 1,
    "image_points_no": 0,
    "description_points_gt_200": 2,
    "description_points_lte_200": 1,
    "stars_points_yes": 1,
    "stars_points_no": 0,
    "price_points_lt_100": 1,
    "price_points_gte_100": 2,
}


class FakeContractCall:
    def __init__(self, result: Any) -> None:
        self._result = result

    def call(self) -> Any:
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class FakeContractFunctions:
    def __init__(self, eth: FakeEth) -> None:
        self._eth = eth

    def getReviewStatus(self, review_hash: bytes) -> FakeContractCall:  # noqa: N802 - ABI name
        if self._eth.status_error is not None:
            return FakeContractCall(self._eth.status_error)
        return FakeContractCall(self._eth.statuses.get("0x" + review_hash.hex(), 0))


class FakeContract:
    def __init__(self, eth: FakeEth) -> None:
        self.functions = FakeContractFunctions(eth)


class FakeEth:
    """In-process stand-in for ``web3.eth`` serving canned receipts."""

    def __init__(self, chain_id: int) -> None:
        self.chain_id = chain_id
        self.receipts: dict[str, dict[str, Any]] = {}
        self.blocks: dict[int, dict[str, Any]] = {}
        self.statuses: dict[str, int] = {}
        self.status_error: Exception | None = None
        self.receipt_error: Exception | None = None

    def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any]:
        if self.receipt_error is not None:
            raise self.receipt_error
        receipt = self.receipts.get(tx_hash.lower())
        if receipt is None:
            raise TransactionNotFound(f"Transaction with hash: {tx_hash!r} not found.")
        return receipt

    def get_block(self, block_number: int) -> dict[str, Any]:
        return self.blocks[block_number]

    def contract(self, address: str, abi: list[dict[str, Any]]) -> FakeContract:
        return FakeContract(self)


class FakeWeb3:
    def __init__(self, chain_id: int = TEST_CHAIN_ID) -> None:
        self.eth = FakeEth(chain_id)

    def add_anchor(
        self,
        tx_hash: str,
        *,
        user_wallet: str,
        review_hash: str,
        establishment_id: str,
        contract_address: str = TEST_CONTRACT_ADDRESS,
        status: int = 1,
        block_number: int = 1200,
        block_timestamp: int = 1_760_000_000,
    ) -> dict[str, Any]:
        """Register a mined receipt carrying one ReviewAnchored log."""
        topics = [
            bytes.fromhex(REVIEW_ANCHORED_TOPIC[2:]),
            bytes(12) + bytes.fromhex(user_wallet[2:]),
            bytes.fromhex(review_hash[2:]),
            bytes.fromhex(hash_establishment(establishment_id)[2:]),
        ]
        receipt = {
            "transactionHash": tx_hash,
            "status": status,
            "to": contract_address,
            "blockNumber": block_number,
            "logs": [{"address": contract_address, "topics": topics, "data": "0x"}],
        }
        self.eth.receipts[tx_hash.lower()] = receipt
        self.eth.blocks[block_number] = {"number": block_number, "timestamp": block_timestamp}
        return receipt


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_idempotency_cache() -> Iterator[None]:
    clear_idempotency_cache()
    yield
    clear_idempotency_cache()


@pytest.fixture()
def fake_web3() -> FakeWeb3:
    return FakeWeb3()


@pytest.fixture(autouse=True)
def override_chain_dependencies(app: FastAPI, fake_web3: FakeWeb3) -> Iterator[None]:
    """Route every ledger call to the in-process fake."""
    overrides = {
        reviews_endpoints.get_chain_verifier_dep: lambda: ChainVerifier(fake_web3),
        reviews_endpoints.get_status_reader_dep: lambda: ChainStatusReader([fake_web3]),
    }
    for dependency, override in overrides.items():
        app.dependency_overrides[dependency] = override
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def sign_text(account: Any, text: str) -> str:
    signed = account.sign_message(encode_defunct(text=text))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture()
def wallet() -> Any:
    """Fresh local signing account."""
    return Account.create()


@pytest.fixture()
def other_wallet() -> Any:
    return Account.create()


def _persist_user(db_session: Session, address: str, name: str, role: str = "user") -> User:
    user = User(wallet_address=address, name=name, role=role)
    db_session.add(user)
    db_session.flush()
    db_session.add(Wallet(user_id=user.id, address=address))
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session, wallet: Any) -> Iterator[User]:
    """Create and return a persisted user bound to ``wallet``."""
    yield _persist_user(db_session, wallet.address, "Test User")


@pytest.fixture()
def admin_user(db_session: Session) -> Iterator[User]:
    yield _persist_user(db_session, Account.create().address, "Admin", role=ROLE_ADMIN)


@pytest.fixture()
def establishment(db_session: Session) -> Iterator[Establishment]:
    establishment = Establishment(name="Cafe Central", category="coffee", country="AR")
    db_session.add(establishment)
    db_session.flush()
    db_session.refresh(establishment)
    yield establishment


@pytest.fixture()
def points_config(db_session: Session) -> Iterator[PointsConfig]:
    config = PointsConfig(**EXAMPLE_POINTS_CONFIG)
    db_session.add(config)
    db_session.flush()
    db_session.refresh(config)
    yield config


def mint_token(db_session: Session, user: User) -> str:
    """Mint a live session for ``user`` without a wallet round-trip."""
    minted = AuthService(db_session).mint_session(user, None, datetime.now(UTC))
    db_session.flush()
    return minted.access_token


@pytest.fixture()
def auth_token(db_session: Session, test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return {"Authorization": f"Bearer {mint_token(db_session, test_user)}"}


@pytest.fixture()
def admin_token(db_session: Session, admin_user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(db_session, admin_user)}"}


def build_review_payload(
    user: User,
    establishment: Establishment,
    *,
    review_id: str | None = None,
    timestamp: str = "2026-10-19T12:30:45.123Z",
    price: float = 50,
    description: str = "d" * 250,
    stars: int | None = 5,
    evidence_images: list[str] | None = None,
    tx_hash: str | None = None,
) -> dict[str, Any]:
    """Build a submission whose review_hash matches its own fields."""
    review_id = review_id or str(uuid.uuid4())
    review_hash = hash_review(
        review_id,
        str(user.id),
        str(establishment.id),
        timestamp,
        canonical_price(price),
    )
    return {
        "review_id": review_id,
        "review_hash": review_hash,
        "review_timestamp": timestamp,
        "tx_hash": tx_hash or "0x" + uuid.uuid4().hex * 2,
        "user_id": str(user.id),
        "establishment_id": str(establishment.id),
        "title": "Great flat white",
        "description": description,
        "stars": stars,
        "price": price,
        "purchase_url": "https://shop.example/receipt/1",
        "tags": ["coffee", "Coffee", "brunch"],
        "evidence_images": evidence_images
        if evidence_images is not None
        else ["https://img.example/1.jpg", "https://img.example/2.jpg"],
    }


def anchor_payload(fake_web3: FakeWeb3, user: User, payload: dict[str, Any]) -> None:
    fake_web3.add_anchor(
        payload["tx_hash"],
        user_wallet=user.wallet_address,
        review_hash=payload["review_hash"],
        establishment_id=payload["establishment_id"],
    )
