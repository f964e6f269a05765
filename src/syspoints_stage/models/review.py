# src/syspoints_stage/models/review.py
"""SQLAlchemy models for reviews, their evidence and on-chain anchors."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from syspoints_stage.db.session import Base
from syspoints_stage.db.time import utcnow


class Review(Base):
    """Immutable review row, created exactly once per client-supplied id."""

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    establishment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("establishments.id"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    stars: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    purchase_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    # 0x-prefixed keccak digest, stored lower-case.
    review_hash: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    review_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    evidence: Mapped[list[ReviewEvidence]] = relationship(
        "ReviewEvidence",
        order_by="ReviewEvidence.position",
        cascade="all, delete-orphan",
    )
    anchor: Mapped[ReviewAnchor | None] = relationship(
        "ReviewAnchor",
        uselist=False,
        cascade="all, delete-orphan",
    )


class ReviewEvidence(Base):
    """Evidence image URL attached to a review."""

    __tablename__ = "review_evidence"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("reviews.id", ondelete="CASCADE"),
        nullable=False,
    )
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class ReviewAnchor(Base):
    """Transaction that anchored a review hash on-chain."""

    __tablename__ = "review_anchors"
    __table_args__ = (UniqueConstraint("tx_hash", name="uq_review_anchors_tx_hash"),)

    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("reviews.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    chain_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    block_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    block_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
