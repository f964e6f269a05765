"""Points configuration schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PointsConfigUpdate(BaseModel):
    """Full replacement of the reward weights."""

    image_points_yes: int
    image_points_no: int
    description_points_gt_200: int
    description_points_lte_200: int
    stars_points_yes: int
    stars_points_no: int
    price_points_lt_100: int
    price_points_gte_100: int
    default_user_avatar_url: str | None = Field(None, description="Avatar for new users")


class PointsConfigResponse(PointsConfigUpdate):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
