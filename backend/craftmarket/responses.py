# Overview: JSON response envelopes and the app-wide error handlers.

"""
Every endpoint answers with one of two shapes:

    success: {"success": true,  "statusCode": 200, "message": ..., "result": ..., "meta": ...}
    error:   {"success": false, "statusCode": 400, "message": ...}

Errors that escape a route (unknown URL, wrong method, unhandled exception)
get the fallback shape, which also carries "status": "error".
"""

from __future__ import annotations

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .errors import ApiError, InternalError


def json_body() -> dict:
    """Request JSON object, or {} when the body is missing or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def success_response(message: str, result=None, status_code: int = 200, meta: dict | None = None):
    body = {
        "success": True,
        "statusCode": status_code,
        "message": message,
        "result": result,
    }
    if meta is not None:
        body["meta"] = meta
    return jsonify(body), status_code


def error_response(err: ApiError):
    body = {
        "success": False,
        "statusCode": err.status_code,
        "message": err.message,
    }
    if err.details:
        body.update({k: v for k, v in err.details.items() if v is not None})
    return jsonify(body), err.status_code


def internal_error_response(log_message: str):
    """Log the active exception and answer with a generic 500."""
    current_app.logger.exception(log_message)
    return error_response(InternalError("Internal server error"))


def _fallback(status_code: int, message: str):
    return jsonify({
        "status": "error",
        "success": False,
        "statusCode": status_code,
        "message": message,
    }), status_code


def register_error_handlers(app) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        return error_response(err)

    @app.errorhandler(404)
    def handle_not_found(err):
        return _fallback(404, "This route does not exist")

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return _fallback(err.code or 500, err.description or err.name)

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        current_app.logger.exception("Unhandled exception")
        return _fallback(500, "Internal server error")
