"""Persisted idempotent responses keyed by (user, key)."""
from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from syspoints_stage.models.idempotency import IdempotencyKey

__all__ = ["IdempotencyRepository"]


class IdempotencyRepository:
    """Database-held source of truth for idempotent submissions."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_response(self, user_id: uuid.UUID, key: str) -> dict[str, Any] | None:
        stmt = select(IdempotencyKey.response_body).where(
            IdempotencyKey.user_id == user_id,
            IdempotencyKey.idempotency_key == key,
        )
        return self.session.execute(stmt).scalars().first()

    def save_response(
        self,
        user_id: uuid.UUID,
        key: str,
        response_body: dict[str, Any],
    ) -> dict[str, Any]:
        """Store ``response_body`` unless a response already exists for the key.

        Returns whichever response ends up stored, so concurrent duplicates
        converge on the first writer's result.
        """
        try:
            with self.session.begin_nested():
                self.session.add(
                    IdempotencyKey(
                        user_id=user_id,
                        idempotency_key=key,
                        response_body=response_body,
                    )
                )
        except IntegrityError:
            stored = self.find_response(user_id, key)
            if stored is not None:
                return stored
            raise
        return response_body
