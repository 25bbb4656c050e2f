"""
errors.py — Error Taxonomy
===========================
Exceptions raised on the request path and the single place that turns them
into JSON responses.

Transport failures are NOT here: the dispatcher returns them as a failed
SendResult and the controller decides the status code.
"""

import logging
import traceback
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

log = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


class EmailServiceError(Exception):
    """Base for every error this service raises on purpose."""

    status_code = 500

    def __init__(self, message: str, code: str = "EMAIL_SERVICE_ERROR", status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "timestamp": utc_timestamp(),
        }


class ValidationFailure(EmailServiceError):
    status_code = 400

    def __init__(self, details: list[dict]):
        super().__init__("Validation failed", code="VALIDATION_FAILED")
        self.details = details

    @property
    def fields(self) -> list[str]:
        return [d["field"] for d in self.details]

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["details"] = self.details
        return body


class InvalidJSON(EmailServiceError):
    status_code = 400

    def __init__(self):
        super().__init__("Invalid JSON in request body", code="INVALID_JSON")


class AuthenticationFailure(EmailServiceError):
    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTHENTICATION_FAILED")


class ConfigError(Exception):
    """Startup-fatal: the environment does not describe a runnable service."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Environment validation error: " + "; ".join(problems))


def register_error_handlers(app: Flask, environment: str) -> None:
    expose_detail = environment != "production"

    @app.errorhandler(EmailServiceError)
    def handle_service_error(e: EmailServiceError):
        log.warning(f"{request.method} {request.path} rejected [{e.code}]: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(NotFound)
    def handle_not_found(e: NotFound):
        return jsonify({
            "success": False,
            "error": "Not Found",
            "message": f"Route {request.full_path.rstrip('?')} not found",
            "timestamp": utc_timestamp(),
        }), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        body = {
            "success": False,
            "error": e.name,
            "message": e.description,
            "timestamp": utc_timestamp(),
        }
        if e.code == 429:
            log.warning(f"Rate limit exceeded for {request.remote_addr} on {request.path}")
            body["error"] = "Too many requests from this IP, please try again later."
            body["retryAfter"] = app.config.get("RATE_LIMIT_WINDOW_SECONDS")
        return jsonify(body), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        log.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=e)
        body = {
            "success": False,
            "error": str(e) if expose_detail else "Internal server error",
            "timestamp": utc_timestamp(),
        }
        if expose_detail:
            body["stack"] = "".join(traceback.format_exception(e))
        return jsonify(body), 500
