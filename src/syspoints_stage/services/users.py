"""User lookups and explicit registration."""
from __future__ import annotations

import logging
import uuid

from eth_utils import is_address, to_checksum_address
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from syspoints_stage.core.errors import ConflictError, ValidationError
from syspoints_stage.core.settings import settings
from syspoints_stage.models.user import User
from syspoints_stage.repositories.user_repo import UserRepository
from syspoints_stage.services.points import get_current_config

__all__ = [
    "default_avatar_url",
    "default_user_name",
    "find_user_by_id",
    "find_user_by_wallet",
    "create_user",
]

logger = logging.getLogger(__name__)


def default_user_name(address: str) -> str:
    return f"user-{address[2:8].lower()}"


def default_avatar_url(db: Session, address: str) -> str:
    """Prefer the avatar configured by admins, else the settings template."""
    config = get_current_config(db)
    if config is not None and config.default_user_avatar_url:
        return config.default_user_avatar_url
    return settings.default_avatar_url_template.format(address=address.lower())


def normalize_wallet(address: str) -> str:
    """Return the checksummed form of ``address`` or raise ValidationError."""
    if not isinstance(address, str) or not is_address(address):
        raise ValidationError("invalid wallet address")
    return to_checksum_address(address)


def find_user_by_id(db: Session, user_id: uuid.UUID) -> User | None:
    return UserRepository(db).get_by_id(user_id)


def find_user_by_wallet(db: Session, address: str) -> User | None:
    return UserRepository(db).get_by_wallet(address)


def create_user(
    db: Session,
    *,
    wallet_address: str | None,
    email: str | None = None,
    name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """Register a user explicitly; duplicates surface as ConflictError."""
    repo = UserRepository(db)
    address = normalize_wallet(wallet_address) if wallet_address else None
    if address is not None and repo.get_by_wallet(address) is not None:
        raise ConflictError("wallet already registered")
    if email is not None and repo.get_by_email(email) is not None:
        raise ConflictError("email already registered")
    if not name:
        if address is None:
            raise ValidationError("name is required when no wallet is given")
        name = default_user_name(address)
    if avatar_url is None and address is not None:
        avatar_url = default_avatar_url(db, address)

    try:
        with db.begin_nested():
            user = repo.create(
                name=name,
                wallet_address=address,
                email=email,
                avatar_url=avatar_url,
            )
            if address is not None:
                repo.upsert_wallet(user.id, address)
    except IntegrityError as err:
        raise ConflictError("user already exists") from err
    db.commit()
    logger.info("Registered user %s", user.id)
    return user
