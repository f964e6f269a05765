# src/syspoints_stage/services/reviews.py
"""Review submission pipeline.

A submission is accepted only after every gate below passes, in order:

1. structural checks on ids, hashes and the review timestamp
2. idempotent replay of an earlier response for the same key
3. content checks on the review text, tags and evidence
4. establishment and user lookups
5. recomputation of the review hash
6. on-chain verification of the anchoring transaction
7. points computation against the current configuration

Nothing is written before the last gate; the review, its evidence and its
anchor are then committed together.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from threading import Lock
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from syspoints_stage.core.errors import (
    AuthorizationError,
    ChainVerificationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from syspoints_stage.core.settings import settings
from syspoints_stage.db.time import as_utc
from syspoints_stage.models.review import Review, ReviewAnchor, ReviewEvidence
from syspoints_stage.models.user import User
from syspoints_stage.repositories.establishment_repo import EstablishmentRepository
from syspoints_stage.repositories.idempotency_repo import IdempotencyRepository
from syspoints_stage.repositories.review_repo import ReviewRepository
from syspoints_stage.repositories.user_repo import UserRepository
from syspoints_stage.schemas.review import AnchorTxRequest, ReviewCreate
from syspoints_stage.services.chain import ChainStatusReader, ChainVerifier, ReviewChainStatus
from syspoints_stage.services.points import compute_points, require_current_config
from syspoints_stage.utils.hash import canonical_price, canonical_timestamp, hash_review
from syspoints_stage.utils.validation import (
    is_http_url,
    normalize_tags,
    parse_datetime,
    parse_uuid,
    positive_price,
    require_hex32,
    safe_text,
)

logger = logging.getLogger(__name__)

# Per-process shortcut only; the idempotency_keys table is authoritative.
# Entries are (expiry, response), oldest first.
_IDEMPOTENCY_CACHE: OrderedDict[str, tuple[float, dict[str, Any]]] = OrderedDict()
_CACHE_LOCK = Lock()


def clear_idempotency_cache() -> None:
    with _CACHE_LOCK:
        _IDEMPOTENCY_CACHE.clear()


def _cache_key(user_id: uuid.UUID, key: str) -> str:
    return f"{user_id}:{key}"


def _cache_get(cache_key: str) -> dict[str, Any] | None:
    now = time.monotonic()
    with _CACHE_LOCK:
        entry = _IDEMPOTENCY_CACHE.get(cache_key)
        if entry is None:
            return None
        expiry, response = entry
        if expiry < now:
            _IDEMPOTENCY_CACHE.pop(cache_key, None)
            return None
        _IDEMPOTENCY_CACHE.move_to_end(cache_key)
        return response


def _cache_put(cache_key: str, response: dict[str, Any]) -> None:
    """Store ``response`` and evict least recently used entries past the cap."""
    expiry = time.monotonic() + settings.idempotency_cache_ttl_seconds
    with _CACHE_LOCK:
        _IDEMPOTENCY_CACHE[cache_key] = (expiry, response)
        _IDEMPOTENCY_CACHE.move_to_end(cache_key)
        while len(_IDEMPOTENCY_CACHE) > max(settings.idempotency_cache_max_entries, 0):
            _IDEMPOTENCY_CACHE.popitem(last=False)


def _iso(value: datetime | None) -> str | None:
    return canonical_timestamp(as_utc(value)) if value is not None else None


def format_review_response(review: Review, anchor: ReviewAnchor | None) -> dict[str, Any]:
    """Flatten a review, its evidence and its anchor into a JSON-safe dict."""
    return {
        "id": str(review.id),
        "user_id": str(review.user_id),
        "establishment_id": str(review.establishment_id),
        "title": review.title,
        "description": review.description,
        "stars": review.stars,
        "price": float(review.price),
        "purchase_url": review.purchase_url,
        "tags": list(review.tags or []),
        "evidence_images": [item.image_url for item in review.evidence],
        "created_at": _iso(review.created_at),
        "points_awarded": review.points_awarded,
        "review_hash": review.review_hash,
        "tx_hash": anchor.tx_hash if anchor is not None else "",
        "chain_id": anchor.chain_id if anchor is not None else None,
        "block_number": anchor.block_number if anchor is not None else None,
        "block_timestamp": _iso(anchor.block_timestamp) if anchor is not None else None,
        "tx_recorded_at": _iso(anchor.recorded_at) if anchor is not None else None,
    }


@dataclass(frozen=True)
class _StructuralFields:
    review_id: uuid.UUID
    review_hash: str
    tx_hash: str
    review_timestamp: datetime


@dataclass(frozen=True)
class _ContentFields:
    establishment_id: uuid.UUID
    title: str
    description: str
    stars: int | None
    price: Decimal
    purchase_url: str | None
    tags: list[str]
    evidence_images: list[str]


def _check_structure(payload: ReviewCreate, user: User) -> _StructuralFields:
    review_id = parse_uuid("review_id", payload.review_id)
    review_hash = require_hex32(
        "review_hash", payload.review_hash, "review_hash must be a 32-byte hex string"
    )
    tx_hash = require_hex32(
        "tx_hash", payload.tx_hash, "tx_hash must be a valid transaction hash"
    )
    review_timestamp = parse_datetime("review_timestamp", payload.review_timestamp)
    if payload.user_id is not None and parse_uuid("user_id", payload.user_id) != user.id:
        raise AuthorizationError("user_id does not match authenticated user")
    return _StructuralFields(review_id, review_hash, tx_hash, review_timestamp)


def _check_content(payload: ReviewCreate) -> _ContentFields:
    establishment_id = parse_uuid("establishment_id", payload.establishment_id)
    title = safe_text("title", payload.title, max_length=settings.review_title_max_chars)
    description = safe_text(
        "description",
        payload.description,
        max_length=settings.review_description_max_chars,
    )
    stars = payload.stars
    if stars is not None and not 1 <= stars <= 5:
        raise ValidationError("stars must be an integer between 1 and 5")
    price = positive_price(payload.price)

    purchase_url = (payload.purchase_url or "").strip() or None
    if purchase_url is not None and not is_http_url(purchase_url):
        raise ValidationError("purchase_url must be a valid http/https URL when provided")

    tags = normalize_tags(payload.tags, max_tags=settings.review_max_tags)

    images = payload.evidence_images
    max_images = settings.review_max_evidence_images
    if not isinstance(images, list) or not 1 <= len(images) <= max_images:
        raise ValidationError(f"evidence_images must contain between 1 and {max_images} items")
    if not all(is_http_url(url) for url in images):
        raise ValidationError("evidence_images must contain valid http/https URLs")

    return _ContentFields(
        establishment_id=establishment_id,
        title=title,
        description=description,
        stars=stars,
        price=price,
        purchase_url=purchase_url,
        tags=tags,
        evidence_images=[url.strip() for url in images],
    )


def _conflict_message(err: IntegrityError) -> str:
    text = str(err.orig if err.orig is not None else err).lower()
    if "tx_hash" in text:
        return "tx_hash already linked to another review"
    if "reviews.id" in text or "reviews_pkey" in text:
        return "review already exists"
    return "review_hash already exists"


def _optional_int(value: object, *, minimum: int, message: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as err:
            raise ValidationError(message) from err
    if not isinstance(value, int) or value < minimum:
        raise ValidationError(message)
    return value


class ReviewService:
    """Run the submission pipeline and read stored reviews."""

    def __init__(self, db: Session, verifier: ChainVerifier | None = None) -> None:
        self.db = db
        self.verifier = verifier or ChainVerifier()
        self.reviews = ReviewRepository(db)
        self.idempotency = IdempotencyRepository(db)

    def find_idempotent_response(self, user_id: uuid.UUID, key: str) -> dict[str, Any] | None:
        cache_key = _cache_key(user_id, key)
        cached = _cache_get(cache_key)
        if cached is not None:
            return cached
        stored = self.idempotency.find_response(user_id, key)
        if stored is not None:
            _cache_put(cache_key, stored)
        return stored

    def create_review(
        self,
        user: User,
        payload: ReviewCreate,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Validate, verify and persist a review submission exactly once.

        Returns the formatted review. A repeated ``idempotency_key`` for the
        same user returns the first stored response unchanged.
        """
        fields = _check_structure(payload, user)

        key = (idempotency_key or "").strip() or None
        if key is not None:
            replay = self.find_idempotent_response(user.id, key)
            if replay is not None:
                logger.info("Replaying idempotent review response for user %s", user.id)
                return replay

        content = _check_content(payload)

        if EstablishmentRepository(self.db).get_by_id(content.establishment_id) is None:
            raise NotFoundError("establishment not found")
        reviewer = UserRepository(self.db).get_by_id(user.id)
        if reviewer is None:
            raise NotFoundError("user not found")
        wallet = reviewer.wallet_address or next(
            (item.address for item in reviewer.wallets), None
        )
        if not wallet:
            raise ValidationError("user wallet_address is required")

        expected_hash = hash_review(
            str(fields.review_id),
            str(reviewer.id),
            str(content.establishment_id),
            canonical_timestamp(fields.review_timestamp),
            canonical_price(content.price),
        )
        if expected_hash.lower() != fields.review_hash:
            raise ValidationError("review_hash mismatch")

        verification = self.verifier.verify_anchored_tx(
            fields.tx_hash,
            wallet,
            fields.review_hash,
            str(content.establishment_id),
        )
        if not verification.ok:
            logger.warning(
                "Anchor verification failed for review %s: %s",
                fields.review_id,
                verification.reason,
            )
            raise ChainVerificationError(verification.reason or "unknown")

        config = require_current_config(self.db)
        points = compute_points(
            content.description,
            content.stars,
            content.price,
            len(content.evidence_images),
            config,
        )

        if self.reviews.exists(fields.review_id):
            raise ConflictError("review already exists")

        review = Review(
            id=fields.review_id,
            user_id=reviewer.id,
            establishment_id=content.establishment_id,
            title=content.title,
            description=content.description,
            stars=content.stars,
            price=content.price,
            purchase_url=content.purchase_url,
            tags=content.tags,
            points_awarded=points,
            review_hash=fields.review_hash,
            review_timestamp=fields.review_timestamp,
        )
        review.evidence = [
            ReviewEvidence(image_url=url, position=position)
            for position, url in enumerate(content.evidence_images)
        ]
        try:
            with self.db.begin_nested():
                self.reviews.add_review(review)
                anchor = self.reviews.upsert_anchor(
                    review.id,
                    tx_hash=fields.tx_hash,
                    chain_id=verification.chain_id,
                    block_number=verification.block_number,
                    block_timestamp=verification.block_timestamp,
                )
        except IntegrityError as err:
            raise ConflictError(_conflict_message(err)) from err
        response = format_review_response(review, anchor)
        self.db.commit()
        logger.info(
            "Review %s created for user %s with %d points", review.id, reviewer.id, points
        )

        if key is not None:
            response = self.idempotency.save_response(reviewer.id, key, response)
            self.db.commit()
            _cache_put(_cache_key(reviewer.id, key), response)
        return response

    def get_review(self, review_id: str) -> dict[str, Any]:
        try:
            parsed = uuid.UUID(str(review_id))
        except ValueError as err:
            raise ValidationError("review_id must be a UUID") from err
        review = self.reviews.get_by_id(parsed)
        if review is None:
            raise NotFoundError("review not found")
        return format_review_response(review, review.anchor)

    def get_chain_status(self, review_id: str, reader: ChainStatusReader) -> tuple[dict[str, Any], ReviewChainStatus]:
        review = self.get_review(review_id)
        return review, reader.get_review_status(review["review_hash"])

    def save_anchor_tx(self, user: User, review_id: str, payload: AnchorTxRequest) -> dict[str, Any]:
        """Record anchoring transaction metadata for a stored review.

        Only the review's author or an admin may do this. The metadata is
        stored as given; it is not re-verified against the chain.
        """
        parsed_id = parse_uuid("id", review_id)
        tx_hash = require_hex32("tx_hash", payload.tx_hash, "tx_hash must be a valid transaction hash")
        chain_id = _optional_int(payload.chain_id, minimum=1, message="chain_id must be a positive integer")
        block_number = _optional_int(
            payload.block_number, minimum=0, message="block_number must be a non-negative integer"
        )
        block_timestamp = None
        if payload.block_timestamp is not None:
            block_timestamp = parse_datetime("block_timestamp", payload.block_timestamp)

        review = self.reviews.get_by_id(parsed_id)
        if review is None:
            raise NotFoundError("review not found")
        if review.user_id != user.id and not user.is_admin:
            raise AuthorizationError("not allowed to persist transaction metadata for this review")

        try:
            with self.db.begin_nested():
                anchor = self.reviews.upsert_anchor(
                    parsed_id,
                    tx_hash=tx_hash,
                    chain_id=chain_id,
                    block_number=block_number,
                    block_timestamp=block_timestamp,
                )
        except IntegrityError as err:
            raise ConflictError(_conflict_message(err)) from err
        self.db.commit()
        logger.info("Recorded anchor tx %s for review %s", tx_hash, parsed_id)
        return {
            "review_id": str(anchor.review_id),
            "tx_hash": anchor.tx_hash,
            "chain_id": anchor.chain_id,
            "block_number": anchor.block_number,
            "block_timestamp": _iso(anchor.block_timestamp),
            "recorded_at": _iso(anchor.recorded_at),
        }
