"""Data access helpers for establishments."""
from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from syspoints_stage.models.establishment import Establishment

__all__ = ["EstablishmentRepository"]


class EstablishmentRepository:
    """Key lookups and inserts for establishments."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, establishment_id: uuid.UUID) -> Establishment | None:
        return self.session.get(Establishment, establishment_id)

    def create(
        self,
        *,
        name: str,
        category: str,
        image_url: str | None = None,
        address: str | None = None,
        country: str | None = None,
    ) -> Establishment:
        establishment = Establishment(
            name=name,
            category=category,
            image_url=image_url,
            address=address,
            country=country,
        )
        self.session.add(establishment)
        self.session.flush()
        return establishment
