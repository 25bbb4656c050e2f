"""
validation.py — Request Field Rules
====================================
Declarative per-route rule tables. Every rule is evaluated; the request is
rejected with the complete list of violations, never just the first.

A validated body comes back as the payload dataclass the dispatcher expects.
"""

import ipaddress
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from errors import ValidationFailure
from templates import (
    ContactFormPayload,
    NewsletterSignupPayload,
    NewsletterVerifiedPayload,
    TestEmailPayload,
)


@dataclass(frozen=True)
class FieldRule:
    field:      str             # JSON name in the request body
    attr:       str             # payload dataclass attribute
    message:    str
    required:   bool = True
    trim:       bool = False
    min_length: int | None = None
    max_length: int | None = None
    format:     str | None = None  # "email" | "iso8601" | "ip" | "url"
    empty_is_absent: bool = False   # optional field: "" counts as not sent


def _is_iso8601(value: str) -> bool:
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _is_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


def _normalize_email(value: str) -> str | None:
    try:
        return validate_email(value, check_deliverability=False,
                              allow_smtputf8=False).ascii_email.lower()
    except EmailNotValidError:
        return None


FORMAT_CHECKS = {
    "iso8601": _is_iso8601,
    "ip":      _is_ip,
    "url":     _is_url,
}


# ── Rule tables ───────────────────────────────────────────────────────────────

EMAIL_RULE = FieldRule("email", "email", "Valid email is required", format="email")
FIRST_NAME_RULE = FieldRule("firstName", "first_name", "First name must be less than 50 characters",
                            required=False, trim=True, max_length=50, empty_is_absent=True)
LAST_NAME_RULE = FieldRule("lastName", "last_name", "Last name must be less than 50 characters",
                           required=False, trim=True, max_length=50, empty_is_absent=True)

CONTACT_RULES = [
    FieldRule("name", "name", "Name is required and must be less than 100 characters",
              trim=True, min_length=1, max_length=100),
    EMAIL_RULE,
    FieldRule("subject", "subject", "Subject is required and must be less than 200 characters",
              trim=True, min_length=1, max_length=200),
    FieldRule("message", "message", "Message is required and must be less than 5000 characters",
              trim=True, min_length=1, max_length=5000),
    FieldRule("documentId", "document_id", "Invalid value", required=False, empty_is_absent=True),
    FieldRule("createdAt", "created_at", "Invalid value", required=False, format="iso8601"),
    FieldRule("ipAddress", "ip_address", "Invalid value", required=False, format="ip"),
    FieldRule("userAgent", "user_agent", "Invalid value", required=False, empty_is_absent=True),
]

NEWSLETTER_SIGNUP_RULES = [
    EMAIL_RULE,
    FIRST_NAME_RULE,
    LAST_NAME_RULE,
    FieldRule("verificationToken", "verification_token", "Valid verification token is required",
              min_length=32),
    FieldRule("source", "source", "Source is required and must be less than 50 characters",
              min_length=1, max_length=50),
    FieldRule("sourceUrl", "source_url", "Source URL must be a valid URL",
              required=False, format="url", empty_is_absent=True),
]

NEWSLETTER_VERIFIED_RULES = [
    EMAIL_RULE,
    FIRST_NAME_RULE,
    LAST_NAME_RULE,
]

TEST_EMAIL_RULES = [
    FieldRule("to", "to", "Valid recipient email is required", format="email"),
    FieldRule("subject", "subject", "Subject is required and must be less than 200 characters",
              trim=True, min_length=1, max_length=200),
    FieldRule("message", "message", "Message is required and must be less than 5000 characters",
              trim=True, min_length=1, max_length=5000),
]


# ── Evaluation ────────────────────────────────────────────────────────────────

def _check(rule: FieldRule, body: dict) -> tuple[object, bool]:
    """Returns (cleaned value, ok). Absent optional fields come back as (None, True)."""
    value = body.get(rule.field)

    if value is None or (rule.empty_is_absent and value == ""):
        return None, not rule.required

    if not isinstance(value, str):
        return value, False

    if rule.trim:
        value = value.strip()

    if rule.min_length is not None and len(value) < rule.min_length:
        return value, False
    if rule.max_length is not None and len(value) > rule.max_length:
        return value, False

    if rule.format == "email":
        normalized = _normalize_email(value)
        return (normalized, True) if normalized else (value, False)
    if rule.format is not None and not FORMAT_CHECKS[rule.format](value):
        return value, False

    return value, True


def validate(rules: list[FieldRule], body: dict) -> tuple[dict, list[dict]]:
    """Returns (cleaned attrs, errors). Empty error list = valid."""
    cleaned: dict = {}
    errors: list[dict] = []
    for rule in rules:
        value, ok = _check(rule, body)
        if ok:
            cleaned[rule.attr] = value
        else:
            errors.append({"field": rule.field, "message": rule.message})
    return cleaned, errors


def _build(rules: list[FieldRule], payload_cls, body: dict | None):
    cleaned, errors = validate(rules, body or {})
    if errors:
        raise ValidationFailure(errors)
    return payload_cls(**cleaned)


def contact_form(body: dict | None) -> ContactFormPayload:
    return _build(CONTACT_RULES, ContactFormPayload, body)


def newsletter_signup(body: dict | None) -> NewsletterSignupPayload:
    return _build(NEWSLETTER_SIGNUP_RULES, NewsletterSignupPayload, body)


def newsletter_verified(body: dict | None) -> NewsletterVerifiedPayload:
    return _build(NEWSLETTER_VERIFIED_RULES, NewsletterVerifiedPayload, body)


def operator_test_email(body: dict | None) -> TestEmailPayload:
    return _build(TEST_EMAIL_RULES, TestEmailPayload, body)
