# src/syspoints_stage/models/points_config.py
"""Admin-managed reward weights; the most recent row is the current one."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from syspoints_stage.db.session import Base
from syspoints_stage.db.time import utcnow


class PointsConfig(Base):
    """Integer reward weights keyed by predicate outcome."""

    __tablename__ = "points_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    image_points_yes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_points_no: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description_points_gt_200: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description_points_lte_200: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stars_points_yes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stars_points_no: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_points_lt_100: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_points_gte_100: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    default_user_avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
