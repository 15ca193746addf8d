"""
Error taxonomy shared by every service, and the Flask handlers that turn
those errors into JSON responses.
"""

import logging
from typing import Tuple

from flask import Flask, jsonify, Response
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP status."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(ApiError):
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Permission denied"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Conflict"


class Internal(ApiError):
    status_code = 500
    default_message = "Internal Server Error"


def register_error_handlers(app: Flask) -> None:
    """
    Install JSON error handlers on the app.

    Every failure leaving a view is rendered as {"error": <message>}; storage
    and unexpected errors never leak their detail to the client.
    """

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError) -> Tuple[Response, int]:
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException) -> Tuple[Response, int]:
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception) -> Tuple[Response, int]:
        logging.exception(f"[Gateway] Unhandled error: {error}")
        return jsonify({"error": Internal.default_message}), 500
