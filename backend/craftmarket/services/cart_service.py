# Overview: Cart engine; per-user cart line items and the running total.

"""
Cart Service

WHY: The cart is the one piece of commerce state the customer mutates
directly, often from several tabs at once.

INVARIANTS:
- total_price_cents == sum(unit_price_cents * quantity) over the lines,
  recomputed on every mutation (never adjusted incrementally)
- quantity >= 1 on every line; a decrement at 1 is rejected, not applied
- a cart with no lines does not exist (removing the last line deletes it)

CONCURRENCY: every mutation locks the cart row, bumps the cart version and
commits once. Lost updates surface as StaleDataError and the whole
read-modify-write is retried (services/concurrency.py).
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Cart, CartLine
from ..validation import require_positive_int
from . import catalog_service
from .concurrency import RETRYABLE_ERRORS, lock_for_update, run_with_retry
from craftmarket.time_utils import utcnow


ACTION_INCREMENT = "increment"
ACTION_DECREMENT = "decrement"
ACTIONS = (ACTION_INCREMENT, ACTION_DECREMENT)

# Concurrent first adds race on the unique carts.user_id / cart line keys
_ADD_RETRY_ON = RETRYABLE_ERRORS + (IntegrityError,)


def _cart_query(user_id: int):
    return db.session.query(Cart).filter(Cart.user_id == user_id)


def _locked_cart(user_id: int) -> Cart:
    cart = lock_for_update(_cart_query(user_id)).first()
    if cart is None:
        raise NotFoundError("Cart not found")
    return cart


def _locked_line(user_id: int, product_id: int) -> tuple[Cart, CartLine]:
    cart = _locked_cart(user_id)
    line = cart.line_for(product_id)
    if line is None:
        raise NotFoundError("Product not found in cart")
    return cart, line


def _recompute_total(cart: Cart) -> None:
    cart.total_price_cents = sum(line.line_total_cents for line in cart.lines)
    # Always dirty the cart row so the version column moves with its lines
    cart.updated_at = utcnow()


def get_cart(user_id: int) -> Cart:
    cart = _cart_query(user_id).first()
    if cart is None:
        raise NotFoundError("Cart not found")
    return cart


def add_item(user_id: int, product_id, quantity=1) -> Cart:
    """
    Add quantity units of a product, creating the cart on first use.

    An existing line is incremented and keeps the price it was added at;
    a new line snapshots the current catalog price.
    """
    product_id = require_positive_int(product_id, "productId")
    quantity = require_positive_int(quantity, "quantity")

    def _op():
        product = catalog_service.get_product(product_id)

        cart = lock_for_update(_cart_query(user_id)).first()
        if cart is None:
            cart = Cart(user_id=user_id, total_price_cents=0)
            db.session.add(cart)

        line = cart.line_for(product.id)
        if line is None:
            cart.lines.append(CartLine(
                product_id=product.id,
                quantity=quantity,
                unit_price_cents=product.price_cents,
            ))
        else:
            line.quantity += quantity

        _recompute_total(cart)
        db.session.commit()
        return cart

    return run_with_retry(_op, retry_on=_ADD_RETRY_ON)


def remove_item(user_id: int, product_id) -> Cart | None:
    """Drop a line. Returns None when that was the last line and the cart is gone."""
    product_id = require_positive_int(product_id, "productId")

    def _op():
        cart, line = _locked_line(user_id, product_id)
        cart.lines.remove(line)

        if not cart.lines:
            db.session.delete(cart)
            db.session.commit()
            return None

        _recompute_total(cart)
        db.session.commit()
        return cart

    return run_with_retry(_op)


def adjust_quantity(user_id: int, product_id, action) -> Cart:
    if action not in ACTIONS:
        raise ValidationError("Invalid action. Use 'increment' or 'decrement'.")
    product_id = require_positive_int(product_id, "productId")

    def _op():
        cart, line = _locked_line(user_id, product_id)

        if action == ACTION_INCREMENT:
            line.quantity += 1
        else:
            if line.quantity <= 1:
                db.session.rollback()
                raise ValidationError("Quantity cannot be less than 1")
            line.quantity -= 1

        _recompute_total(cart)
        db.session.commit()
        return cart

    return run_with_retry(_op)


def delete_cart(user_id: int) -> None:
    def _op():
        cart = _locked_cart(user_id)
        db.session.delete(cart)
        db.session.commit()

    run_with_retry(_op)
