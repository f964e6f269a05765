"""Establishment lookups and admin creation."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from syspoints_stage.models.establishment import Establishment
from syspoints_stage.repositories.establishment_repo import EstablishmentRepository

logger = logging.getLogger(__name__)


def find_establishment_by_id(db: Session, establishment_id: uuid.UUID) -> Establishment | None:
    return EstablishmentRepository(db).get_by_id(establishment_id)


def create_establishment(
    db: Session,
    *,
    name: str,
    category: str,
    image_url: str | None = None,
    address: str | None = None,
    country: str | None = None,
) -> Establishment:
    establishment = EstablishmentRepository(db).create(
        name=name,
        category=category,
        image_url=image_url,
        address=address,
        country=country,
    )
    db.commit()
    logger.info("Created establishment %s", establishment.id)
    return establishment
