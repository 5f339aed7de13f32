# Overview: Shipping address book scoped to one user.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Address
from ..validation import ModelValidationPolicy, validate_payload


ADDRESS_POLICY = ModelValidationPolicy(
    writable_fields={"street", "city", "state", "zip", "country", "is_default"},
    required_on_create={"street", "city", "state", "zip", "country"},
)

ADDRESS_ALIASES = {"isDefault": "is_default", "zipCode": "zip"}


def _normalize(payload) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return {ADDRESS_ALIASES.get(k, k): v for k, v in payload.items()}


def _clear_default(user_id: int, keep_id: int | None = None) -> None:
    query = db.session.query(Address).filter(Address.user_id == user_id, Address.is_default.is_(True))
    for address in query.all():
        if address.id != keep_id:
            address.is_default = False


def list_addresses(user_id: int) -> list[Address]:
    return db.session.query(Address).filter(
        Address.user_id == user_id
    ).order_by(Address.is_default.desc(), Address.id.asc()).all()


def get_address(user_id: int, address_id: int) -> Address:
    address = db.session.query(Address).filter(
        Address.id == address_id,
        Address.user_id == user_id,
    ).first()
    if address is None:
        raise NotFoundError("Address not found")
    return address


def create_address(user_id: int, payload) -> Address:
    """First address of a user becomes the default; a new default demotes the old one."""
    patch = validate_payload(model=Address, payload=_normalize(payload), policy=ADDRESS_POLICY, partial=False)

    has_any = db.session.query(Address.id).filter(Address.user_id == user_id).first() is not None
    if not has_any:
        patch["is_default"] = True
    elif patch.get("is_default"):
        _clear_default(user_id)

    address = Address(user_id=user_id, **patch)
    db.session.add(address)
    db.session.commit()
    return address


def update_address(user_id: int, address_id: int, payload) -> Address:
    patch = validate_payload(model=Address, payload=_normalize(payload), policy=ADDRESS_POLICY, partial=True)
    address = get_address(user_id, address_id)

    if patch.get("is_default"):
        _clear_default(user_id, keep_id=address.id)

    for key, value in patch.items():
        setattr(address, key, value)
    db.session.commit()
    return address


def delete_address(user_id: int, address_id: int) -> None:
    address = get_address(user_id, address_id)
    db.session.delete(address)
    db.session.commit()
