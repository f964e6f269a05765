# src/syspoints_stage/models/auth.py
"""Models backing wallet sign-in challenges and server-side sessions."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from syspoints_stage.db.session import Base
from syspoints_stage.db.time import as_utc, utcnow


class AuthNonce(Base):
    """Single-use sign-in challenge issued to a wallet address.

    Rows are never deleted; ``consumed_at`` is set exactly once by the
    verification that wins the conditional update.
    """

    __tablename__ = "auth_nonces"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    nonce: Mapped[str] = mapped_column(String(64), nullable=False)
    domain: Mapped[str] = mapped_column(Text, nullable=False)
    uri: Mapped[str] = mapped_column(Text, nullable=False)
    chain_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        return as_utc(self.expires_at) <= (now or utcnow())


class AuthSession(Base):
    """Server-side record of a minted bearer token, keyed by its ``jti``."""

    __tablename__ = "auth_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    wallet_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("wallets.id", ondelete="SET NULL"),
        nullable=True,
    )
    jti: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def is_active(self, now: datetime | None = None) -> bool:
        """Active iff not revoked and not yet expired."""
        return self.revoked_at is None and as_utc(self.expires_at) > (now or utcnow())
