# Overview: Flask API routes for product reviews.

# backend/craftmarket/routes/reviews.py
"""
Review API routes

Reading is public. Writing requires a bearer token; edits are author-only,
deletes are author or admin.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import ApiError
from ..responses import error_response, internal_error_response, success_response
from ..services import review_service


reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/v1/reviews")


@reviews_bp.post("")
@require_auth
def create_review_route():
    """Request body: {"productId": 1, "rating": 5, "comment": "..."}"""
    try:
        review = review_service.create_review(g.identity, request.get_json(silent=True))
        return success_response("Review created successfully", review.to_dict(), status_code=201)
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to add review")


@reviews_bp.get("")
def list_reviews_route():
    """Optional query: ?productId=<id>"""
    try:
        reviews = review_service.list_reviews(request.args.get("productId"))
        return success_response("Reviews retrieved successfully", [r.to_dict() for r in reviews])
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to get reviews")


@reviews_bp.get("/<int:review_id>")
def get_review_route(review_id: int):
    try:
        review = review_service.get_review(review_id)
        return success_response("Review retrieved successfully", review.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to get review")


@reviews_bp.put("/<int:review_id>")
@require_auth
def update_review_route(review_id: int):
    try:
        review = review_service.update_review(review_id, g.identity, request.get_json(silent=True))
        return success_response("Review updated successfully", review.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update review")


@reviews_bp.delete("/<int:review_id>")
@require_auth
def delete_review_route(review_id: int):
    try:
        review_service.delete_review(review_id, g.identity)
        return success_response("Review deleted successfully")
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to delete review")
