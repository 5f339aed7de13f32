# Overview: Flask API routes for the signed-in user's cart.

# backend/craftmarket/routes/carts.py
"""
Cart API routes

Every route acts on the caller's own cart (identity from the bearer token);
there is no cart id in the path.
"""

from flask import Blueprint, g

from ..decorators import require_auth
from ..errors import ApiError
from ..responses import error_response, internal_error_response, json_body, success_response
from ..services import cart_service


carts_bp = Blueprint("carts", __name__, url_prefix="/api/v1/carts")


@carts_bp.get("")
@require_auth
def get_cart_route():
    try:
        cart = cart_service.get_cart(g.identity.user_id)
        return success_response("Cart retrieved successfully", cart.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to get cart")


@carts_bp.post("/products/<int:product_id>")
@require_auth
def add_product_route(product_id: int):
    """
    Add a product (or more of it) to the cart.

    Request body (optional): {"quantity": 2}   default 1
    """
    try:
        cart = cart_service.add_item(
            g.identity.user_id,
            product_id,
            quantity=json_body().get("quantity", 1),
        )
        return success_response("Product added to cart", cart.to_dict(), status_code=201)
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to add product to cart")


@carts_bp.delete("/products/<int:product_id>")
@require_auth
def remove_product_route(product_id: int):
    try:
        cart = cart_service.remove_item(g.identity.user_id, product_id)
        if cart is None:
            return success_response("Product removed; cart is now empty")
        return success_response("Product removed from cart", cart.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to remove product from cart")


@carts_bp.patch("/products/quantity")
@require_auth
def update_quantity_route():
    """Request body: {"prodId": 1, "action": "increment" | "decrement"}"""
    try:
        data = json_body()
        cart = cart_service.adjust_quantity(
            g.identity.user_id,
            data.get("prodId", data.get("productId")),
            data.get("action"),
        )
        return success_response("Cart quantity updated", cart.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update cart quantity")


@carts_bp.delete("")
@require_auth
def delete_cart_route():
    try:
        cart_service.delete_cart(g.identity.user_id)
        return success_response("Cart deleted successfully")
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to delete cart")
