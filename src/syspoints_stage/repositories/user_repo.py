"""Data access helpers for users and wallets."""
from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from syspoints_stage.db.time import utcnow
from syspoints_stage.models.user import User, Wallet

__all__ = ["UserRepository"]


class UserRepository:
    """Thin wrapper around database access for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, user_id: uuid.UUID) -> User | None:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self.session.execute(select(User).where(User.email == email)).scalars().first()

    def get_by_wallet(self, address: str) -> User | None:
        """Resolve a user by wallet, preferring the wallets table over the legacy column."""
        normalized = address.strip().lower()
        if not normalized:
            return None
        user = self.session.execute(
            select(User)
            .join(Wallet, Wallet.user_id == User.id)
            .where(func.lower(Wallet.address) == normalized)
            .limit(1)
        ).scalars().first()
        if user is not None:
            return user
        return self.session.execute(
            select(User).where(func.lower(User.wallet_address) == normalized).limit(1)
        ).scalars().first()

    def create(
        self,
        *,
        name: str,
        wallet_address: str | None = None,
        email: str | None = None,
        avatar_url: str | None = None,
        role: str = "user",
    ) -> User:
        user = User(
            wallet_address=wallet_address,
            email=email,
            name=name,
            avatar_url=avatar_url,
            role=role,
        )
        self.session.add(user)
        self.session.flush()
        return user

    def upsert_wallet(self, user_id: uuid.UUID, address: str) -> Wallet:
        """Bind ``address`` to ``user_id`` and stamp the login time."""
        wallet = self.session.execute(
            select(Wallet).where(func.lower(Wallet.address) == address.lower()).limit(1)
        ).scalars().first()
        if wallet is None:
            wallet = Wallet(user_id=user_id, address=address)
            self.session.add(wallet)
        else:
            wallet.user_id = user_id
        wallet.last_login = utcnow()
        self.session.flush()
        return wallet
