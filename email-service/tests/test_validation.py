"""Rule tables evaluated directly, without HTTP."""

import pytest

import validation
from errors import ValidationFailure


def test_contact_form_builds_payload():
    payload = validation.contact_form({
        "name": "  Ada  ", "email": "ADA@example.com", "subject": "Hi", "message": " Hello ",
        "documentId": "doc-9", "ipAddress": "10.0.0.1",
    })

    assert payload.name == "Ada"
    assert payload.message == "Hello"
    assert payload.email == "ada@example.com"
    assert payload.document_id == "doc-9"
    assert payload.created_at is None


def test_missing_body_lists_every_required_field():
    with pytest.raises(ValidationFailure) as exc_info:
        validation.contact_form(None)

    assert exc_info.value.fields == ["name", "email", "subject", "message"]
    assert exc_info.value.status_code == 400


def test_non_string_values_rejected():
    with pytest.raises(ValidationFailure) as exc_info:
        validation.newsletter_signup({"email": "a@b.com", "verificationToken": 12345, "source": ["x"]})

    assert exc_info.value.fields == ["verificationToken", "source"]


def test_whitespace_name_is_empty():
    with pytest.raises(ValidationFailure) as exc_info:
        validation.contact_form({"name": "   ", "email": "a@b.com", "subject": "s", "message": "m"})
    assert exc_info.value.fields == ["name"]


@pytest.mark.parametrize("value, ok", [
    ("2024-05-01", True),
    ("2024-05-01T12:30:00Z", True),
    ("2024-05-01T12:30:00.123+02:00", True),
    ("05/01/2024", False),
])
def test_created_at_iso8601(value, ok):
    body = {"name": "A", "email": "a@b.com", "subject": "s", "message": "m", "createdAt": value}
    if ok:
        assert validation.contact_form(body).created_at == value
    else:
        with pytest.raises(ValidationFailure):
            validation.contact_form(body)


def test_empty_optional_fields_are_absent():
    payload = validation.newsletter_verified({"email": "a@b.com", "firstName": "", "lastName": None})
    assert payload.first_name is None
    assert payload.last_name is None


def test_verification_token_kept_verbatim():
    token = "AbC-" + "9" * 40
    payload = validation.newsletter_signup({"email": "a@b.com", "verificationToken": token,
                                            "source": "footer"})
    assert payload.verification_token == token


def test_non_ascii_local_part_rejected():
    with pytest.raises(ValidationFailure) as exc_info:
        validation.newsletter_verified({"email": "josé@example.com"})
    assert exc_info.value.fields == ["email"]


def test_international_domain_sent_as_ascii():
    payload = validation.newsletter_verified({"email": "reader@bücher.de"})
    assert payload.email == "reader@xn--bcher-kva.de"


@pytest.mark.parametrize("field", ["createdAt", "ipAddress"])
def test_empty_string_fails_format_check(field):
    body = {"name": "A", "email": "a@b.com", "subject": "s", "message": "m", field: ""}
    with pytest.raises(ValidationFailure) as exc_info:
        validation.contact_form(body)
    assert exc_info.value.fields == [field]


def test_empty_source_url_is_absent():
    payload = validation.newsletter_signup({"email": "a@b.com", "verificationToken": "x" * 32,
                                            "source": "footer", "sourceUrl": ""})
    assert payload.source_url is None
