"""User endpoints for the Syspoints API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from syspoints_stage.api.v1.dependencies import CurrentUserDep, SessionDep
from syspoints_stage.core.errors import NotFoundError
from syspoints_stage.schemas.user import UserCreate, UserSummary
from syspoints_stage.services.auth import user_summary
from syspoints_stage.services.users import create_user, find_user_by_id

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserSummary)
def register_user(payload: UserCreate, db: SessionDep) -> UserSummary:
    """Register a user ahead of their first wallet sign-in."""
    user = create_user(
        db,
        wallet_address=payload.wallet_address,
        email=payload.email,
        name=payload.name,
        avatar_url=payload.avatar_url,
    )
    return UserSummary(**user_summary(user))


@router.get("/me", response_model=UserSummary)
def read_me(current_user: CurrentUserDep) -> UserSummary:
    return UserSummary(**user_summary(current_user))


@router.get("/{user_id}", response_model=UserSummary)
def read_user(user_id: uuid.UUID, db: SessionDep) -> UserSummary:
    user = find_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("user not found")
    return UserSummary(**user_summary(user))
