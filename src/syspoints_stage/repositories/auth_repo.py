"""Data access for sign-in nonces and server-side sessions."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from syspoints_stage.db.time import utcnow
from syspoints_stage.models.auth import AuthNonce, AuthSession

__all__ = ["NonceRepository", "SessionRepository"]


class NonceRepository:
    """Persisted single-use challenges keyed by wallet address."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        *,
        wallet_address: str,
        nonce: str,
        domain: str,
        uri: str,
        chain_id: int,
        issued_at: datetime,
        expires_at: datetime,
    ) -> AuthNonce:
        """Insert a new challenge record and return it."""
        record = AuthNonce(
            wallet_address=wallet_address,
            nonce=nonce,
            domain=domain,
            uri=uri,
            chain_id=chain_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        self.session.add(record)
        self.session.flush()
        return record

    def find(self, wallet_address: str, nonce: str) -> AuthNonce | None:
        """Return the record for ``(wallet_address, nonce)``, consumed or not.

        Expiry and consumption are left to the caller so it can report a
        precise reason.
        """
        stmt = (
            select(AuthNonce)
            .where(
                func.lower(AuthNonce.wallet_address) == wallet_address.lower(),
                AuthNonce.nonce == nonce,
            )
            .order_by(AuthNonce.id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def consume(self, nonce_id: int, *, now: datetime | None = None) -> bool:
        """Mark a nonce consumed iff nobody consumed it first.

        Returns True only for the caller whose conditional update won.
        """
        consumed_at = now or utcnow()
        result = self.session.execute(
            update(AuthNonce)
            .where(AuthNonce.id == nonce_id, AuthNonce.consumed_at.is_(None))
            .values(consumed_at=consumed_at)
        )
        return result.rowcount == 1


class SessionRepository:
    """Server-side session records keyed by token id (jti)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        *,
        user_id: uuid.UUID,
        wallet_id: int | None,
        jti: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> AuthSession:
        record = AuthSession(
            user_id=user_id,
            wallet_id=wallet_id,
            jti=jti,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        self.session.add(record)
        self.session.flush()
        return record

    def find_active(self, jti: str, *, now: datetime | None = None) -> AuthSession | None:
        """Return the session for ``jti`` if it is neither revoked nor expired."""
        stmt = (
            select(AuthSession)
            .where(
                AuthSession.jti == jti,
                AuthSession.revoked_at.is_(None),
                AuthSession.expires_at > (now or utcnow()),
            )
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def revoke(self, jti: str, *, now: datetime | None = None) -> bool:
        """Revoke an active session; returns False if it was already inactive."""
        revoked_at = now or utcnow()
        result = self.session.execute(
            update(AuthSession)
            .where(AuthSession.jti == jti, AuthSession.revoked_at.is_(None))
            .values(revoked_at=revoked_at)
        )
        return result.rowcount == 1
