# Overview: App-wide translation of the error taxonomy into JSON responses.

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .validation import (
    AuthenticationRequired,
    ConflictError,
    PermissionDeniedError,
    PreconditionError,
    RemoteStoreError,
    ValidationError,
)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (ConflictError, 409),
    (PreconditionError, 409),
    (AuthenticationRequired, 401),
    (PermissionDeniedError, 403),
)


def register_error_handlers(app: Flask) -> None:
    """
    ValidationError and PreconditionError are user-facing conditions and are
    never logged. A Product Store failure is logged and reported with a
    generic message; anything else is a 500.
    """
    for error_class, status in STATUS_BY_ERROR:
        app.register_error_handler(error_class, _json_error(status))

    @app.errorhandler(RemoteStoreError)
    def handle_remote_store_error(error):
        app.logger.error("Product Store error: %s", error)
        return jsonify({"error": "The product catalog is unavailable. Please try again."}), 502

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return jsonify({"error": error.description}), error.code
        app.logger.exception("Unhandled exception")
        return jsonify({"error": "Internal server error"}), 500


def _json_error(status: int):
    def handler(error):
        body = {"error": str(error)}
        if isinstance(error, PreconditionError):
            body["code"] = type(error).__name__
        return jsonify(body), status
    return handler
