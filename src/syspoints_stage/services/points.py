"""Reward computation and the admin-managed points configuration."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from syspoints_stage.core.errors import ConfigurationError
from syspoints_stage.models.points_config import PointsConfig
from syspoints_stage.repositories.points_config_repo import WEIGHT_FIELDS, PointsConfigRepository

logger = logging.getLogger(__name__)

DESCRIPTION_LENGTH_THRESHOLD = 200
PRICE_THRESHOLD = Decimal(100)


def compute_points(
    description: str,
    stars: int | None,
    price: Decimal | int | float,
    evidence_count: int,
    config: PointsConfig,
) -> int:
    """Sum the weight selected by each of the four predicates.

    Each predicate picks exactly one of its two weights; the result is
    neither clamped nor rounded.
    """
    total = 0
    total += config.image_points_yes if evidence_count > 0 else config.image_points_no
    total += (
        config.description_points_gt_200
        if len(description) > DESCRIPTION_LENGTH_THRESHOLD
        else config.description_points_lte_200
    )
    total += config.stars_points_yes if stars is not None else config.stars_points_no
    total += (
        config.price_points_lt_100
        if Decimal(str(price)) < PRICE_THRESHOLD
        else config.price_points_gte_100
    )
    return total


def get_current_config(db: Session) -> PointsConfig | None:
    return PointsConfigRepository(db).get_current()


def require_current_config(db: Session) -> PointsConfig:
    config = get_current_config(db)
    if config is None:
        raise ConfigurationError("points config not found")
    return config


def set_config(db: Session, values: dict[str, Any]) -> PointsConfig:
    """Insert a new configuration row, which becomes current."""
    row = PointsConfigRepository(db).insert(values)
    db.commit()
    logger.info(
        "Points configuration %s stored: %s",
        row.id,
        {field: getattr(row, field) for field in WEIGHT_FIELDS},
    )
    return row
