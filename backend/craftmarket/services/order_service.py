# Overview: Order engine; cart-to-order materialization and the order status machine.

"""
Order Service

WHY: An order is the immutable record of what the customer agreed to pay
for. Creation copies the cart (lines, unit prices, total) and consumes it
in the same commit, so a cart can never turn into two orders.

STATUS MACHINE (forward only, one step at a time):

    pending -> processing -> shipped -> delivered
    pending | processing | shipped -> cancelled

delivered and cancelled are terminal. Owners may cancel while the order is
pending or processing; admins may cancel any non-terminal order.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Cart, Order, OrderLine
from ..roles import ADMIN_ROLES
from .concurrency import lock_for_update, run_with_retry
from .permission_service import Identity, require_owner
from craftmarket.time_utils import utcnow


STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_SHIPPED = "shipped"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = (
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_SHIPPED,
    STATUS_DELIVERED,
    STATUS_CANCELLED,
)

NEXT_STATUS = {
    STATUS_PENDING: STATUS_PROCESSING,
    STATUS_PROCESSING: STATUS_SHIPPED,
    STATUS_SHIPPED: STATUS_DELIVERED,
}

TERMINAL_STATUSES = frozenset({STATUS_DELIVERED, STATUS_CANCELLED})
OWNER_CANCELLABLE = frozenset({STATUS_PENDING, STATUS_PROCESSING})

PAYMENT_METHODS = ("credit_card", "online_banking", "cash_on_delivery")
PAYMENT_STATUSES = ("paid", "unpaid")

ADDRESS_FIELDS = ("street", "city", "state", "zip", "country")


def _validate_shipping_address(value) -> dict:
    if not isinstance(value, dict):
        raise ValidationError("shippingAddress must be an object")

    address = {}
    for field in ADDRESS_FIELDS:
        raw = value.get(field)
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError(f"shippingAddress.{field} is required")
        address[field] = raw.strip()
    return address


def _validate_choice(value, choices, field: str) -> str:
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value


def create_order(user_id: int, shipping_address, payment_method, payment_status) -> Order:
    """
    Materialize the user's cart into a pending order and delete the cart.

    Raises ValidationError if a field is missing or invalid, or if there is
    no cart to order.
    """
    if not shipping_address or not payment_method or not payment_status:
        raise ValidationError("shippingAddress, paymentMethod, and paymentStatus are required")

    address = _validate_shipping_address(shipping_address)
    payment_method = _validate_choice(payment_method, PAYMENT_METHODS, "paymentMethod")
    payment_status = _validate_choice(payment_status, PAYMENT_STATUSES, "paymentStatus")

    def _op():
        cart = lock_for_update(
            db.session.query(Cart).filter(Cart.user_id == user_id)
        ).first()
        if cart is None or not cart.lines:
            raise ValidationError("Cart is empty or not found")

        order = Order(
            user_id=user_id,
            shipping_address=address,
            payment_method=payment_method,
            payment_status=payment_status,
            status=STATUS_PENDING,
        )
        for line in cart.lines:
            order.lines.append(OrderLine(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=line.line_total_cents,
            ))
        order.total_price_cents = sum(line.line_total_cents for line in order.lines)

        db.session.add(order)
        db.session.delete(cart)
        db.session.commit()
        return order

    return run_with_retry(_op)


def get_order(order_id: int, identity: Identity) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    require_owner(identity, order.user_id, allow_roles=ADMIN_ROLES,
                  message="You can only access your own orders")
    return order


def list_orders(identity: Identity, status: str | None = None, user_id: int | None = None) -> list[Order]:
    """Customers get their own orders; admins get everything, optionally filtered."""
    query = db.session.query(Order)

    if identity.role in ADMIN_ROLES:
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
    else:
        query = query.filter(Order.user_id == identity.user_id)

    if status:
        query = query.filter(Order.status == _validate_choice(status, ORDER_STATUSES, "status"))

    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def _locked_order(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _cancel(order: Order, identity: Identity) -> None:
    order.status = STATUS_CANCELLED
    order.cancelled_at = utcnow()
    order.cancelled_by_user_id = identity.user_id


def update_status(order_id: int, new_status, identity: Identity) -> Order:
    """
    Admin status change. Only the next forward step or "cancelled" is
    accepted; anything else (same status, backwards, skipping a step, or
    leaving a terminal state) is rejected.
    """
    new_status = _validate_choice(new_status, ORDER_STATUSES, "status")

    def _op():
        order = _locked_order(order_id)

        if order.status in TERMINAL_STATUSES:
            raise ValidationError(f"Order is already {order.status}")

        if new_status == STATUS_CANCELLED:
            _cancel(order, identity)
        elif NEXT_STATUS.get(order.status) != new_status:
            raise ValidationError(f"Cannot change order status from {order.status} to {new_status}")
        else:
            order.status = new_status

        db.session.commit()
        return order

    return run_with_retry(_op)


def cancel_order(order_id: int, identity: Identity) -> Order:
    def _op():
        order = _locked_order(order_id)
        require_owner(identity, order.user_id, allow_roles=ADMIN_ROLES,
                      message="You can only cancel your own orders")

        if order.status in TERMINAL_STATUSES:
            raise ValidationError(f"Order is already {order.status}")

        if identity.role not in ADMIN_ROLES and order.status not in OWNER_CANCELLABLE:
            raise ValidationError(f"Order can no longer be cancelled (status: {order.status})")

        _cancel(order, identity)
        db.session.commit()
        return order

    return run_with_retry(_op)
