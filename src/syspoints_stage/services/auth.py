# src/syspoints_stage/services/auth.py
"""Wallet sign-in: nonce issuance, message verification and session minting.

Per wallet the flow is ``NO_NONCE -> NONCE_ISSUED -> CONSUMED``. A nonce is
consumed by exactly one successful verification; every check before that
fails closed with the same client-facing message while the precise reason
goes to the log.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from eth_utils import is_address, to_checksum_address
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from syspoints_stage.core.errors import AuthenticationError, ValidationError
from syspoints_stage.core.security import create_access_token, decode_access_token, token_lifetime
from syspoints_stage.core.settings import settings
from syspoints_stage.db.time import as_utc, utcnow
from syspoints_stage.models.auth import AuthNonce, AuthSession
from syspoints_stage.models.user import User, Wallet
from syspoints_stage.repositories.auth_repo import NonceRepository, SessionRepository
from syspoints_stage.repositories.user_repo import UserRepository
from syspoints_stage.services.siwe import (
    SiweMessage,
    SiweParseError,
    parse_siwe_message,
    parse_timestamp,
    recover_signer,
)
from syspoints_stage.services.users import default_avatar_url, default_user_name
from syspoints_stage.utils.hash import canonical_timestamp

logger = logging.getLogger(__name__)

SIWE_VERSION = "1"
INVALID_CREDENTIALS = "invalid signature or nonce"


class _Rejected(Exception):
    """Internal signal carrying the logged reason for a failed verification."""


@dataclass(frozen=True)
class IssuedNonce:
    address: str
    nonce: str
    domain: str
    uri: str
    chain_id: int
    statement: str
    issued_at: datetime
    expires_at: datetime

    @property
    def message(self) -> str:
        """The exact text the wallet is expected to sign."""
        return SiweMessage(
            domain=self.domain,
            address=self.address,
            statement=self.statement,
            uri=self.uri,
            version=SIWE_VERSION,
            chain_id=self.chain_id,
            nonce=self.nonce,
            issued_at=canonical_timestamp(self.issued_at),
            expiration_time=canonical_timestamp(self.expires_at),
        ).render()


@dataclass(frozen=True)
class MintedSession:
    access_token: str
    expires_in: int
    jti: str
    user: User


def allowed_domains(request_domain: str | None) -> list[str]:
    """Resolve the domain allow-list: explicit list, then configured domain, then request host."""
    explicit = settings.siwe_allowed_domains
    if explicit:
        return explicit
    if settings.siwe_domain:
        return [settings.siwe_domain]
    if request_domain:
        return [request_domain]
    return []


def user_summary(user: User) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "wallet_address": user.wallet_address,
        "avatar_url": user.avatar_url,
        "role": user.role,
    }


class AuthService:
    """Sign-In-With-Ethereum protocol bound to a database session."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.nonces = NonceRepository(db)
        self.sessions = SessionRepository(db)
        self.users = UserRepository(db)

    def issue_nonce(
        self,
        wallet_address: str,
        *,
        domain: str,
        uri: str,
        chain_id: int | None = None,
        now: datetime | None = None,
    ) -> IssuedNonce:
        """Persist a fresh single-use challenge for ``wallet_address``."""
        if not isinstance(wallet_address, str) or not is_address(wallet_address):
            raise ValidationError("wallet_address is invalid")
        if not domain or not uri:
            raise ValidationError("domain and uri are required")

        address = to_checksum_address(wallet_address)
        issued_at = now or utcnow()
        expires_at = issued_at + timedelta(seconds=settings.siwe_nonce_ttl_seconds)
        record = self.nonces.create(
            wallet_address=address,
            nonce=secrets.token_hex(16),
            domain=domain,
            uri=uri,
            chain_id=chain_id if chain_id is not None else settings.require_chain_id(),
            issued_at=issued_at,
            expires_at=expires_at,
        )
        self.db.commit()
        logger.info("Issued sign-in nonce for %s", address)
        return IssuedNonce(
            address=address,
            nonce=record.nonce,
            domain=record.domain,
            uri=record.uri,
            chain_id=record.chain_id,
            statement=settings.siwe_statement,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(
        self,
        message: str,
        signature: str,
        request_domain: str | None = None,
        *,
        now: datetime | None = None,
    ) -> MintedSession:
        """Verify a signed sign-in message and mint a session.

        Raises:
            AuthenticationError: On any failed check, including losing a
                race for the same nonce.
        """
        now = now or utcnow()
        try:
            parsed = self._check_message(message, request_domain, now)
            record = self._check_nonce(parsed, now)
            signer = recover_signer(message, signature)
            if signer is None or signer.lower() != parsed.address.lower():
                raise _Rejected("signature does not match address")
            if not self.nonces.consume(record.id, now=now):
                raise _Rejected("nonce already consumed")
        except _Rejected as rejected:
            logger.warning("Sign-in rejected: %s", rejected)
            raise AuthenticationError(INVALID_CREDENTIALS) from None

        address = to_checksum_address(parsed.address)
        user, wallet = self._bind_wallet(address)
        minted = self.mint_session(user, wallet.id, now)
        self.db.commit()
        logger.info("Session minted for user %s", user.id)
        return minted

    def authenticate(self, token: str, *, now: datetime | None = None) -> tuple[User, AuthSession]:
        """Resolve a bearer token to its live session and user."""
        claims = decode_access_token(token)
        jti = claims.get("jti")
        subject = claims.get("sub")
        if not jti or not subject:
            raise AuthenticationError("invalid token")
        session = self.sessions.find_active(jti, now=now)
        if session is None:
            raise AuthenticationError("session expired or revoked")
        try:
            user_id = uuid.UUID(str(subject))
        except ValueError as err:
            raise AuthenticationError("invalid token") from err
        user = self.users.get_by_id(user_id)
        if user is None or session.user_id != user.id:
            raise AuthenticationError("invalid token")
        return user, session

    def revoke(self, jti: str) -> bool:
        revoked = self.sessions.revoke(jti)
        self.db.commit()
        if revoked:
            logger.info("Session %s revoked", jti)
        return revoked

    def _check_message(self, message: str, request_domain: str | None, now: datetime) -> SiweMessage:
        try:
            parsed = parse_siwe_message(message)
        except SiweParseError as err:
            raise _Rejected(f"malformed message: {err}") from err

        if parsed.version != SIWE_VERSION:
            raise _Rejected("unsupported version")
        if parsed.domain not in allowed_domains(request_domain):
            raise _Rejected(f"domain {parsed.domain!r} not allowed")
        if parsed.chain_id != settings.require_chain_id():
            raise _Rejected("chain id mismatch")

        issued_at = parse_timestamp(parsed.issued_at)
        expiration = parse_timestamp(parsed.expiration_time)
        if issued_at is None or expiration is None:
            raise _Rejected("issued-at or expiration missing")
        if expiration <= now:
            raise _Rejected("message expired")
        if issued_at > now + timedelta(seconds=settings.siwe_clock_skew_seconds):
            raise _Rejected("issued-at in the future")
        if parsed.not_before is not None:
            not_before = parse_timestamp(parsed.not_before)
            if not_before is None or not_before > now:
                raise _Rejected("message not yet valid")
        return parsed

    def _check_nonce(self, parsed: SiweMessage, now: datetime) -> AuthNonce:
        record = self.nonces.find(parsed.address, parsed.nonce)
        if record is None:
            raise _Rejected("unknown nonce")
        if record.consumed_at is not None:
            raise _Rejected("nonce already consumed")
        if record.is_expired(now):
            raise _Rejected("nonce expired")
        if (
            record.domain != parsed.domain
            or int(record.chain_id) != parsed.chain_id
            or record.uri != parsed.uri
        ):
            raise _Rejected("nonce binding mismatch")
        return record

    def _bind_wallet(self, address: str) -> tuple[User, Wallet]:
        """Resolve or create the user for ``address`` and stamp its wallet row.

        Two first sign-ins for the same wallet can both miss the lookup; the
        loser's insert hits the unique constraint and it adopts the winner's
        user instead.
        """
        user = self.users.get_by_wallet(address)
        try:
            with self.db.begin_nested():
                if user is None:
                    user = self.users.create(
                        name=default_user_name(address),
                        wallet_address=address,
                        avatar_url=default_avatar_url(self.db, address),
                    )
                    logger.info("Created user %s for wallet %s", user.id, address)
                elif not user.wallet_address:
                    user.wallet_address = address
                wallet = self.users.upsert_wallet(user.id, address)
        except IntegrityError:
            logger.info("Wallet %s was bound concurrently; reusing existing user", address)
            user = self.users.get_by_wallet(address)
            if user is None:
                raise
            wallet = self.users.upsert_wallet(user.id, address)
        return user, wallet

    def mint_session(self, user: User, wallet_id: int | None, now: datetime) -> MintedSession:
        lifetime = token_lifetime()
        expires_at = now + lifetime
        jti = uuid.uuid4().hex
        token = create_access_token(
            {
                "sub": str(user.id),
                "name": user.name,
                "email": user.email,
                "wallet_address": user.wallet_address,
                "role": user.role,
                "jti": jti,
            },
            issued_at=now,
            expires_at=expires_at,
        )
        self.sessions.create(
            user_id=user.id,
            wallet_id=wallet_id,
            jti=jti,
            issued_at=now,
            expires_at=expires_at,
        )
        return MintedSession(
            access_token=token,
            expires_in=int(lifetime.total_seconds()),
            jti=jti,
            user=user,
        )


def session_expiry(session: AuthSession) -> datetime:
    return as_utc(session.expires_at)
