"""Points configuration endpoints: public read, admin read and replace."""

from __future__ import annotations

from fastapi import APIRouter

from syspoints_stage.api.v1.dependencies import AdminUserDep, SessionDep
from syspoints_stage.schemas.points import PointsConfigResponse, PointsConfigUpdate
from syspoints_stage.services.points import get_current_config, require_current_config, set_config

config_router = APIRouter(prefix="/config", tags=["config"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@config_router.get("/points", response_model=PointsConfigResponse)
def read_points_config(db: SessionDep) -> PointsConfigResponse:
    """Return the reward weights currently in force."""
    return PointsConfigResponse.model_validate(require_current_config(db))


@admin_router.get("/points-config", response_model=PointsConfigResponse | None)
def read_points_config_admin(db: SessionDep, _admin: AdminUserDep) -> PointsConfigResponse | None:
    """Return the current configuration, or null before one is stored."""
    config = get_current_config(db)
    return PointsConfigResponse.model_validate(config) if config is not None else None


@admin_router.put("/points-config", response_model=PointsConfigResponse)
def replace_points_config(
    payload: PointsConfigUpdate,
    db: SessionDep,
    _admin: AdminUserDep,
) -> PointsConfigResponse:
    """Store a new configuration row; it applies to every later submission."""
    return PointsConfigResponse.model_validate(set_config(db, payload.model_dump()))
