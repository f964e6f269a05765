"""Data access for the admin-managed points configuration."""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from syspoints_stage.models.points_config import PointsConfig

__all__ = ["PointsConfigRepository", "WEIGHT_FIELDS"]

WEIGHT_FIELDS = (
    "image_points_yes",
    "image_points_no",
    "description_points_gt_200",
    "description_points_lte_200",
    "stars_points_yes",
    "stars_points_no",
    "price_points_lt_100",
    "price_points_gte_100",
)


class PointsConfigRepository:
    """Append-only store where the most recent row wins."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_current(self) -> PointsConfig | None:
        stmt = (
            select(PointsConfig)
            .order_by(PointsConfig.created_at.desc(), PointsConfig.id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def insert(self, values: dict[str, Any]) -> PointsConfig:
        row = PointsConfig(
            **{field: int(values[field]) for field in WEIGHT_FIELDS},
            default_user_avatar_url=values.get("default_user_avatar_url"),
        )
        self.session.add(row)
        self.session.flush()
        return row
