# Overview: Artisan storefront profile, one per artisan account.

from __future__ import annotations

from urllib.parse import urlparse

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import ArtisanProfile
from ..roles import Role
from ..validation import ModelValidationPolicy, validate_payload
from . import account_service


ARTISAN_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "tag_line", "district", "city", "product_type",
        "social_media", "about", "images",
    },
    required_on_create={"name", "district", "city", "product_type"},
)

ARTISAN_ALIASES = {
    "tagLine": "tag_line",
    "productType": "product_type",
    "socialMedia": "social_media",
}

# Column max lengths come from the model; these are the floors
MIN_LENGTHS = {"name": 3, "district": 2, "city": 2, "product_type": 3}


def _normalize(payload) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return {ARTISAN_ALIASES.get(k, k): v for k, v in payload.items()}


def _enforce_rules(patch: dict) -> None:
    for field, minimum in MIN_LENGTHS.items():
        value = patch.get(field)
        if value is not None and len(value) < minimum:
            raise ValidationError(f"{field} must be at least {minimum} characters")

    social = patch.get("social_media")
    if social:
        parsed = urlparse(social)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("social_media must be an http(s) URL")

    images = patch.get("images")
    if images is not None:
        if not isinstance(images, list) or not all(isinstance(i, dict) for i in images):
            raise ValidationError("images must be a list of objects")


def get_profile(user_id: int) -> ArtisanProfile:
    account_service.get_user(user_id)
    profile = db.session.query(ArtisanProfile).filter(ArtisanProfile.user_id == user_id).first()
    if profile is None:
        raise NotFoundError("Artisan profile not found")
    return profile


def create_profile(user_id: int, payload) -> ArtisanProfile:
    """
    Raises:
        PermissionDeniedError: the account does not hold the artisan role
        ConflictError: the account already has a profile
    """
    user = account_service.get_user(user_id)
    if Role.parse(user.role) != Role.ARTISAN:
        raise PermissionDeniedError("Only artisan accounts can have an artisan profile")

    patch = validate_payload(model=ArtisanProfile, payload=_normalize(payload), policy=ARTISAN_POLICY, partial=False)
    _enforce_rules(patch)

    if db.session.query(ArtisanProfile.id).filter(ArtisanProfile.user_id == user.id).first() is not None:
        raise ConflictError("Artisan profile already exists")

    profile = ArtisanProfile(user_id=user.id, **patch)
    db.session.add(profile)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Artisan profile already exists")
    return profile


def update_profile(user_id: int, payload) -> ArtisanProfile:
    patch = validate_payload(model=ArtisanProfile, payload=_normalize(payload), policy=ARTISAN_POLICY, partial=True)
    _enforce_rules(patch)
    profile = get_profile(user_id)

    for key, value in patch.items():
        setattr(profile, key, value)
    db.session.commit()
    return profile
