"""
routes.py — Email API Controllers
==================================
Binds each POST route to one dispatcher operation:

  POST /contact/welcome          → send_contact_welcome
  POST /contact/admin            → send_contact_admin_notice
  POST /newsletter/verification  → send_newsletter_verification
  POST /newsletter/welcome       → send_newsletter_welcome
  POST /test-email               → send_test_email (not registered in production)

Order per request: API key → field validation → dispatcher → status mapping.
A failed send is a normal SendResult; it is answered with 500 and the
transport's message.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

import validation
from auth import check_api_key
from dispatch import EmailDispatcher, SendResult
from errors import InvalidJSON, utc_timestamp

log = logging.getLogger(__name__)


def _dispatcher() -> EmailDispatcher:
    return current_app.config["DISPATCHER"]


def _json_body() -> dict:
    if not request.get_data():
        return {}
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise InvalidJSON()
    return data


def _respond(operation: str, recipient: str, result: SendResult, success_message: str,
             failure_message: str):
    if result.success:
        log.info(f"Email operation completed: operation={operation} "
                 f"result=success email={recipient}")
        body = {
            "success": True,
            "message": success_message,
            "messageId": result.message_id,
            "timestamp": utc_timestamp(),
        }
        if result.verification_url is not None:
            body["verificationUrl"] = result.verification_url
        return jsonify(body), 200

    log.error(f"Email operation failed: operation={operation} "
              f"result=error email={recipient} error={result.error}")
    return jsonify({
        "success": False,
        "error": result.error or failure_message,
        "timestamp": utc_timestamp(),
    }), 500


def contact_welcome():
    payload = validation.contact_form(_json_body())
    log.info(f"Sending welcome email: email={payload.email} name={payload.name}")
    result = _dispatcher().send_contact_welcome(payload)
    return _respond("welcome_email", payload.email, result,
                    "Welcome email sent successfully", "Failed to send welcome email")


def contact_admin():
    payload = validation.contact_form(_json_body())
    log.info(f"Sending admin notification: email={payload.email} name={payload.name}")
    result = _dispatcher().send_contact_admin_notice(payload)
    return _respond("admin_notification", payload.email, result,
                    "Admin notification sent successfully", "Failed to send admin notification")


def newsletter_verification():
    payload = validation.newsletter_signup(_json_body())
    log.info(f"Sending newsletter verification email: "
             f"email={payload.email} source={payload.source}")
    result = _dispatcher().send_newsletter_verification(payload)
    return _respond("newsletter_verification", payload.email, result,
                    "Verification email sent successfully", "Failed to send verification email")


def newsletter_welcome():
    payload = validation.newsletter_verified(_json_body())
    log.info(f"Sending newsletter welcome email: email={payload.email}")
    result = _dispatcher().send_newsletter_welcome(payload)
    return _respond("newsletter_welcome", payload.email, result,
                    "Welcome email sent successfully", "Failed to send welcome email")


def send_test():
    payload = validation.operator_test_email(_json_body())
    log.info(f"Sending test email: to={payload.to}")
    result = _dispatcher().send_test_email(payload)
    return _respond("test_email", payload.to, result,
                    "Test email sent successfully", "Failed to send test email")


def build_api_blueprint(include_test_route: bool) -> Blueprint:
    """A fresh blueprint per app, so the test route can be left out in production."""
    bp = Blueprint("email_api", __name__)

    @bp.before_request
    def require_api_key():
        check_api_key(current_app.config["SERVICE_CONFIG"].api_key)

    bp.add_url_rule('/contact/welcome', view_func=contact_welcome, methods=['POST'])
    bp.add_url_rule('/contact/admin', view_func=contact_admin, methods=['POST'])
    bp.add_url_rule('/newsletter/verification', view_func=newsletter_verification, methods=['POST'])
    bp.add_url_rule('/newsletter/welcome', view_func=newsletter_welcome, methods=['POST'])
    if include_test_route:
        bp.add_url_rule('/test-email', view_func=send_test, methods=['POST'])
    return bp
