"""Establishment endpoints for the Syspoints API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from syspoints_stage.api.v1.dependencies import AdminUserDep, SessionDep
from syspoints_stage.core.errors import NotFoundError
from syspoints_stage.schemas.establishment import EstablishmentCreate, EstablishmentResponse
from syspoints_stage.services.establishments import (
    create_establishment,
    find_establishment_by_id,
)

router = APIRouter(prefix="/establishments", tags=["establishments"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=EstablishmentResponse)
def add_establishment(
    payload: EstablishmentCreate,
    db: SessionDep,
    _admin: AdminUserDep,
) -> EstablishmentResponse:
    establishment = create_establishment(db, **payload.model_dump())
    return EstablishmentResponse.model_validate(establishment)


@router.get("/{establishment_id}", response_model=EstablishmentResponse)
def read_establishment(establishment_id: uuid.UUID, db: SessionDep) -> EstablishmentResponse:
    establishment = find_establishment_by_id(db, establishment_id)
    if establishment is None:
        raise NotFoundError("establishment not found")
    return EstablishmentResponse.model_validate(establishment)
