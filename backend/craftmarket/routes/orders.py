# Overview: Flask API routes for orders; checkout from the cart, reads, status changes and cancellation.

# backend/craftmarket/routes/orders.py
"""
Order API routes

SECURITY:
- Customers see and cancel only their own orders
- Status changes require admin or super_admin
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..errors import ApiError, ValidationError
from ..responses import error_response, internal_error_response, json_body, success_response
from ..roles import ADMIN_ROLES
from ..services import order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Turn the caller's cart into an order. The cart is consumed.

    Request body:
    {
        "shippingAddress": {"street": "...", "city": "...", "state": "...", "zip": "...", "country": "..."},
        "paymentMethod": "credit_card" | "online_banking" | "cash_on_delivery",
        "paymentStatus": "paid" | "unpaid"
    }
    """
    try:
        data = json_body()
        order = order_service.create_order(
            g.identity.user_id,
            shipping_address=data.get("shippingAddress"),
            payment_method=data.get("paymentMethod"),
            payment_status=data.get("paymentStatus"),
        )
        return success_response("Order created successfully", order.to_dict(), status_code=201)
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to create order")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Query params (admins only for user_id):
        status   filter by order status
        user_id  filter by owner
    """
    try:
        user_id = request.args.get("user_id")
        if user_id is not None:
            if not user_id.isdigit():
                raise ValidationError("user_id must be an integer")
            user_id = int(user_id)

        orders = order_service.list_orders(
            g.identity,
            status=request.args.get("status"),
            user_id=user_id,
        )
        return success_response(
            "Orders retrieved successfully",
            [o.to_dict() for o in orders],
            meta={"total": len(orders)},
        )
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to list orders")


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id, g.identity)
        return success_response("Order retrieved successfully", order.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to get order")


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_role(ADMIN_ROLES)
def update_order_status_route(order_id: int):
    """Request body: {"status": "processing"}"""
    try:
        order = order_service.update_status(order_id, json_body().get("status"), g.identity)
        return success_response("Order status updated successfully", order.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update order status")


@orders_bp.put("/<int:order_id>/cancel-order")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(order_id, g.identity)
        return success_response("Order cancelled successfully", order.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to cancel order")
