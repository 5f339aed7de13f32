# Overview: Product reviews; public reads, author-owned writes.

"""
Review Service

RULES:
- Any signed-in user may review an existing product (rating 1-5)
- Only the author may edit a review; the author or an admin may delete it
- product_id and user_id are fixed at creation
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Review
from ..roles import ADMIN_ROLES
from ..validation import ModelValidationPolicy, require_positive_int, validate_payload
from . import catalog_service
from .permission_service import Identity, require_owner


CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "rating", "comment"},
    required_on_create={"product_id", "rating"},
)

UPDATE_POLICY = ModelValidationPolicy(writable_fields={"rating", "comment"})

REVIEW_ALIASES = {"productId": "product_id"}

MIN_RATING = 1
MAX_RATING = 5


def _normalize(payload) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return {REVIEW_ALIASES.get(k, k): v for k, v in payload.items()}


def _check_rating(patch: dict) -> None:
    if "rating" in patch and not (MIN_RATING <= (patch["rating"] or 0) <= MAX_RATING):
        raise ValidationError(f"rating must be between {MIN_RATING} and {MAX_RATING}")


def list_reviews(product_id=None) -> list[Review]:
    query = db.session.query(Review)
    if product_id is not None:
        query = query.filter(Review.product_id == require_positive_int(product_id, "productId"))
    return query.order_by(Review.created_at.desc(), Review.id.desc()).all()


def get_review(review_id: int) -> Review:
    review = db.session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    return review


def create_review(identity: Identity, payload) -> Review:
    patch = validate_payload(model=Review, payload=_normalize(payload), policy=CREATE_POLICY, partial=False)
    _check_rating(patch)
    product = catalog_service.get_product(require_positive_int(patch["product_id"], "productId"))

    review = Review(
        product_id=product.id,
        user_id=identity.user_id,
        rating=patch["rating"],
        comment=patch.get("comment"),
    )
    db.session.add(review)
    db.session.commit()
    return review


def update_review(review_id: int, identity: Identity, payload) -> Review:
    review = get_review(review_id)
    require_owner(identity, review.user_id, message="You can only edit your own reviews")

    patch = validate_payload(model=Review, payload=_normalize(payload), policy=UPDATE_POLICY, partial=True)
    _check_rating(patch)

    for key, value in patch.items():
        setattr(review, key, value)
    db.session.commit()
    return review


def delete_review(review_id: int, identity: Identity) -> None:
    review = get_review(review_id)
    require_owner(identity, review.user_id, allow_roles=ADMIN_ROLES,
                  message="You can only delete your own reviews")
    db.session.delete(review)
    db.session.commit()
