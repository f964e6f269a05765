"""Review submission schemas.

Request fields are typed loosely on purpose: the submission pipeline owns
validation so that gate ordering and messages stay under its control.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    """Client-built review plus proof that its hash was anchored on-chain."""

    review_id: str | None = Field(None, description="Client-generated UUID")
    review_hash: str | None = Field(None, description="0x-prefixed keccak digest")
    review_timestamp: str | None = Field(None, description="ISO-8601 timestamp used in the hash")
    tx_hash: str | None = Field(None, description="Anchoring transaction hash")
    user_id: str | None = Field(None, description="Must match the authenticated user when given")
    establishment_id: str | None = None
    title: str | None = None
    description: str | None = None
    stars: int | None = None
    price: float | None = None
    purchase_url: str | None = None
    tags: list[str] | None = None
    evidence_images: list[str] | None = None


class ReviewResponse(BaseModel):
    id: str
    user_id: str
    establishment_id: str
    title: str
    description: str
    stars: int | None = None
    price: float
    purchase_url: str | None = None
    tags: list[str]
    evidence_images: list[str]
    created_at: str
    points_awarded: int
    review_hash: str
    tx_hash: str
    chain_id: int | None = None
    block_number: int | None = None
    block_timestamp: str | None = None
    tx_recorded_at: str | None = None


class ReviewChainStatusResponse(BaseModel):
    """Display-only moderation status read from the contract."""

    review_id: str
    review_hash: str
    ok: bool
    status: int | None = None
    is_pending: bool = False
    is_approved: bool = False
    is_rejected: bool = False
    reason: str | None = None
    checked_at: datetime


class AnchorTxRequest(BaseModel):
    """Transaction metadata recorded against an existing review."""

    tx_hash: str | None = None
    chain_id: Any = None
    block_number: Any = None
    block_timestamp: str | None = Field(None, description="ISO-8601 block time")


class AnchorResponse(BaseModel):
    review_id: str
    tx_hash: str
    chain_id: int | None = None
    block_number: int | None = None
    block_timestamp: str | None = None
    recorded_at: str | None = None
