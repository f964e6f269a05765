"""User-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Public view of a user embedded in auth and user responses."""

    id: str = Field(..., description="User UUID")
    name: str
    email: str | None = None
    wallet_address: str | None = Field(None, description="EIP-55 checksummed address")
    avatar_url: str | None = None
    role: str = Field(..., description="Either 'user' or 'admin'")

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    """Explicit registration payload."""

    wallet_address: str | None = Field(None, description="Wallet address to bind")
    email: str | None = Field(None, max_length=320)
    name: str | None = Field(None, min_length=1, max_length=80)
    avatar_url: str | None = None
