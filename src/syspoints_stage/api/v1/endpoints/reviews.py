# src/syspoints_stage/api/v1/endpoints/reviews.py
"""Review submission and read endpoints for the Syspoints API."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, status

from syspoints_stage.api.v1.dependencies import CurrentUserDep, SessionDep
from syspoints_stage.db.time import utcnow
from syspoints_stage.schemas.review import (
    AnchorResponse,
    AnchorTxRequest,
    ReviewChainStatusResponse,
    ReviewCreate,
    ReviewResponse,
)
from syspoints_stage.services.chain import (
    ChainStatusReader,
    ChainVerifier,
    get_chain_verifier,
    get_status_reader,
)
from syspoints_stage.services.reviews import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


def get_chain_verifier_dep() -> ChainVerifier:
    return get_chain_verifier()


def get_status_reader_dep() -> ChainStatusReader:
    return get_status_reader()


ChainVerifierDep = Annotated[ChainVerifier, Depends(get_chain_verifier_dep)]
StatusReaderDep = Annotated[ChainStatusReader, Depends(get_status_reader_dep)]


@router.post(
    "",
    summary="Submit a review anchored on-chain",
    status_code=status.HTTP_201_CREATED,
    response_model=ReviewResponse,
)
def submit_review(
    payload: ReviewCreate,
    db: SessionDep,
    current_user: CurrentUserDep,
    verifier: ChainVerifierDep,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
) -> dict[str, Any]:
    """Verify the anchoring transaction and persist the review exactly once."""
    service = ReviewService(db, verifier)
    return service.create_review(current_user, payload, idempotency_key)


@router.get("/{review_id}", response_model=ReviewResponse)
def read_review(review_id: str, db: SessionDep) -> dict[str, Any]:
    return ReviewService(db).get_review(review_id)


@router.get("/{review_id}/chain-status", response_model=ReviewChainStatusResponse)
def read_review_chain_status(
    review_id: str,
    db: SessionDep,
    reader: StatusReaderDep,
) -> ReviewChainStatusResponse:
    """Display-only status lookup; tries each configured RPC endpoint in turn."""
    review, chain_status = ReviewService(db).get_chain_status(review_id, reader)
    return ReviewChainStatusResponse(
        review_id=review["id"],
        review_hash=review["review_hash"],
        ok=chain_status.ok,
        status=chain_status.status,
        is_pending=chain_status.is_pending,
        is_approved=chain_status.is_approved,
        is_rejected=chain_status.is_rejected,
        reason=chain_status.reason,
        checked_at=utcnow(),
    )


@router.post("/{review_id}/anchor-tx", response_model=AnchorResponse)
def save_review_anchor_tx(
    review_id: str,
    payload: AnchorTxRequest,
    db: SessionDep,
    current_user: CurrentUserDep,
) -> dict[str, Any]:
    """Record the anchoring transaction for a review; author or admin only."""
    return ReviewService(db).save_anchor_tx(current_user, review_id, payload)
