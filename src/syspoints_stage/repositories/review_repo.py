"""Data access helpers for reviews, evidence and anchors."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from syspoints_stage.models.review import Review, ReviewAnchor

__all__ = ["ReviewRepository"]


class ReviewRepository:
    """Thin wrapper around database access for review entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, review_id: uuid.UUID) -> Review | None:
        """Return a review with its evidence and anchor eagerly loaded."""
        stmt = (
            select(Review)
            .options(selectinload(Review.evidence), selectinload(Review.anchor))
            .where(Review.id == review_id)
        )
        return self.session.execute(stmt).scalars().first()

    def exists(self, review_id: uuid.UUID) -> bool:
        return self.session.get(Review, review_id) is not None

    def add_review(self, review: Review) -> Review:
        """Stage a review together with its evidence rows, then flush.

        Callers own the surrounding transaction.
        """
        self.session.add(review)
        self.session.flush()
        return review

    def upsert_anchor(
        self,
        review_id: uuid.UUID,
        *,
        tx_hash: str,
        chain_id: int | None,
        block_number: int | None,
        block_timestamp: datetime | None,
    ) -> ReviewAnchor:
        """Insert or replace the anchor row keyed by ``review_id``."""
        anchor = self.session.get(ReviewAnchor, review_id)
        if anchor is None:
            anchor = ReviewAnchor(review_id=review_id)
            self.session.add(anchor)
        anchor.tx_hash = tx_hash.lower()
        anchor.chain_id = chain_id
        anchor.block_number = block_number
        anchor.block_timestamp = block_timestamp
        self.session.flush()
        return anchor
