# src/syspoints_stage/api/v1/endpoints/auth.py
"""Wallet sign-in endpoints for the Syspoints API."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, status

from syspoints_stage.api.v1.dependencies import CurrentSessionDep, SessionDep
from syspoints_stage.schemas.auth import (
    NonceRequest,
    NonceResponse,
    SessionResponse,
    TokenRequest,
    TokenResponse,
)
from syspoints_stage.services.auth import AuthService, IssuedNonce, session_expiry, user_summary

router = APIRouter(prefix="/auth", tags=["authentication"])


def _nonce_response(issued: IssuedNonce) -> NonceResponse:
    return NonceResponse(
        address=issued.address,
        nonce=issued.nonce,
        domain=issued.domain,
        uri=issued.uri,
        chain_id=issued.chain_id,
        statement=issued.statement,
        issued_at=issued.issued_at,
        expires_at=issued.expires_at,
        message=issued.message,
    )


def _issue(db: SessionDep, request: Request, payload: NonceRequest) -> NonceResponse:
    issued = AuthService(db).issue_nonce(
        payload.wallet_address,
        domain=payload.domain or request.url.netloc,
        uri=payload.uri or str(request.base_url),
        chain_id=payload.chain_id,
    )
    return _nonce_response(issued)


@router.post(
    "/nonce",
    summary="Issue a single-use sign-in challenge",
    response_model=NonceResponse,
)
def issue_nonce(payload: NonceRequest, request: Request, db: SessionDep) -> NonceResponse:
    """Create a nonce bound to the wallet, domain, URI and chain id."""
    return _issue(db, request, payload)


@router.get("/siwe/nonce", response_model=NonceResponse, include_in_schema=False)
def issue_nonce_query(
    request: Request,
    db: SessionDep,
    wallet_address: str = Query(...),
    domain: str | None = Query(None),
    uri: str | None = Query(None),
    chain_id: int | None = Query(None),
) -> NonceResponse:
    payload = NonceRequest(wallet_address=wallet_address, domain=domain, uri=uri, chain_id=chain_id)
    return _issue(db, request, payload)


@router.post(
    "/token",
    summary="Exchange a signed sign-in message for a bearer token",
    status_code=status.HTTP_200_OK,
    response_model=TokenResponse,
)
def issue_token(payload: TokenRequest, request: Request, db: SessionDep) -> TokenResponse:
    """Verify the signed message and mint a server-side session."""
    minted = AuthService(db).verify(
        payload.message,
        payload.signature,
        request_domain=request.url.netloc,
    )
    return TokenResponse(
        access_token=minted.access_token,
        token_type="Bearer",
        expires_in=minted.expires_in,
        user=user_summary(minted.user),
    )


# Paths used by older web clients.
router.add_api_route(
    "/verify", issue_token, methods=["POST"], response_model=TokenResponse, include_in_schema=False
)
router.add_api_route(
    "/siwe/verify",
    issue_token,
    methods=["POST"],
    response_model=TokenResponse,
    include_in_schema=False,
)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(current: CurrentSessionDep, db: SessionDep) -> None:
    """Revoke the session behind the presented bearer token."""
    _, session = current
    AuthService(db).revoke(session.jti)


@router.get("/session", response_model=SessionResponse)
def read_session(current: CurrentSessionDep) -> SessionResponse:
    user, session = current
    return SessionResponse(user=user_summary(user), expires_at=session_expiry(session))
