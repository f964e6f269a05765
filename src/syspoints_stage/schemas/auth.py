"""Schemas for the wallet sign-in flow."""

from datetime import datetime

from pydantic import BaseModel, Field

from .user import UserSummary


class NonceRequest(BaseModel):
    """Request a sign-in challenge for a wallet."""

    wallet_address: str = Field(..., description="0x-prefixed 20-byte address")
    domain: str | None = Field(None, description="Defaults to the request host")
    uri: str | None = Field(None, description="Defaults to the request base URL")
    chain_id: int | None = Field(None, description="Defaults to the configured chain id")


class NonceResponse(BaseModel):
    """Challenge material the wallet must sign."""

    address: str
    nonce: str
    domain: str
    uri: str
    chain_id: int
    statement: str
    issued_at: datetime
    expires_at: datetime
    message: str = Field(..., description="Exact sign-in message to sign")


class TokenRequest(BaseModel):
    """Signed sign-in message presented for verification."""

    message: str = Field(..., min_length=1, description="Full sign-in message text")
    signature: str = Field(..., min_length=1, description="0x-prefixed EIP-191 signature")


class TokenResponse(BaseModel):
    """Bearer token minted for a verified wallet."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserSummary


class SessionResponse(BaseModel):
    """Live session attached to the presented bearer token."""

    user: UserSummary
    expires_at: datetime
