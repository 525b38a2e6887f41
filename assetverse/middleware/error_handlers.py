"""
App-wide JSON error handlers.

Service exceptions (assetverse.core.exceptions) become
``{"error": message, "code": code}`` with the exception's HTTP status.
Store failures and anything unexpected are logged with the request id and
rendered as an opaque 500; their text never reaches the client.
"""

import logging

from flask import g, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from assetverse.core.exceptions import AssetVerseError, ValidationError
from assetverse.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def init_error_handlers(app):
    """Register JSON error handlers on the app."""

    @app.errorhandler(AssetVerseError)
    def _handle_service_error(error: AssetVerseError):
        if error.status >= 500:
            logger.error("Infrastructure failure on %s %s: %s", request.method, request.path, error,
                         extra={"request_id": getattr(g, "request_id", None)})
            return api_error(E.INTERNAL, "Internal Server Error", status=500)
        details = error.details if isinstance(error, ValidationError) else None
        return api_error(error.code, error.message, status=error.status, details=details)

    @app.errorhandler(SQLAlchemyError)
    def _handle_db_error(error: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.path,
                         extra={"request_id": getattr(g, "request_id", None)})
        return api_error(E.DATABASE, "Internal Server Error", status=500)

    @app.errorhandler(404)
    def _not_found(e):
        return api_error(E.NOT_FOUND, "Not found", status=404)

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.BAD_REQUEST, "Method not allowed", status=405)

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error("RATE_LIMITED", f"Too many requests: {e.description}", status=429)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return api_error(E.BAD_REQUEST, error.description or error.name, status=error.code)
        logger.exception("Unexpected error endpoint=%s", request.endpoint,
                         extra={"request_id": getattr(g, "request_id", None)})
        return api_error(E.INTERNAL, "Internal Server Error", status=500)
