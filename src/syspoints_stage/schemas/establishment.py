"""Establishment schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EstablishmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=80)
    image_url: str | None = None
    address: str | None = None
    country: str | None = None


class EstablishmentResponse(BaseModel):
    id: uuid.UUID
    name: str
    category: str
    image_url: str | None = None
    address: str | None = None
    country: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
