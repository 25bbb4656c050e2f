"""
Dispatcher tests: envelope construction, SendResult normalization, and the
no-retry failure policy. The transport is a recorder; nothing touches SMTP.
"""

import smtplib
from urllib.parse import parse_qs, urlparse

import pytest

from dispatch import EmailDispatcher, SendResult, verification_url_for
from templates import (
    ContactFormPayload,
    NewsletterSignupPayload,
    NewsletterVerifiedPayload,
    TestEmailPayload,
)

from conftest import RecordingTransport


@pytest.fixture
def contact():
    return ContactFormPayload(name="Ada", email="ada@example.com", subject="Engines",
                              message="Let's talk.")


class TestSendResult:

    def test_ok_carries_message_id(self):
        result = SendResult.ok("<id@x>")
        assert result.success is True
        assert result.message_id == "<id@x>"
        assert result.error is None

    def test_failed_always_has_error(self):
        assert SendResult.failed("boom").error == "boom"
        assert SendResult.failed("").error == "Unknown transport error"


class TestContactOperations:

    def test_welcome_goes_to_submitter(self, config, transport, contact):
        result = EmailDispatcher(config, transport).send_contact_welcome(contact)

        assert result.success is True
        assert result.message_id
        envelope = transport.sent[0]
        assert envelope.to == "ada@example.com"
        assert envelope.sender == "The Code Muse <hello@thecodemuse.com>"
        assert envelope.headers["X-Priority"] == "3"
        assert envelope.headers["List-Unsubscribe"] == \
            "<mailto:unsubscribe@thecodemuse.com?subject=unsubscribe>"
        assert "Hello Ada," in envelope.text_body
        assert "Hello Ada," in envelope.html_body

    def test_admin_notice_goes_to_admin_with_high_priority(self, config, transport, contact):
        result = EmailDispatcher(config, transport).send_contact_admin_notice(contact)

        assert result.success is True
        envelope = transport.sent[0]
        assert envelope.recipients == ["admin@thecodemuse.com"]
        assert envelope.headers["X-Priority"] == "1"
        assert envelope.headers["X-MSMail-Priority"] == "High"
        assert envelope.subject == "New Contact Form Submission: Engines"

    @pytest.mark.parametrize("error", [
        smtplib.SMTPRecipientsRefused({"ada@example.com": (550, b"no such user")}),
        smtplib.SMTPAuthenticationError(535, b"bad credentials"),
        ConnectionRefusedError("connection refused"),
    ])
    def test_transport_exception_becomes_failed_result(self, config, contact, error):
        result = EmailDispatcher(config, RecordingTransport(error=error)).send_contact_welcome(contact)

        assert result.success is False
        assert result.error
        assert result.message_id is None


class TestNewsletterOperations:

    def test_verification_url_round_trip(self, config, transport):
        token = "abc123" * 6
        payload = NewsletterSignupPayload(email="g@example.com", verification_token=token,
                                          source="homepage")

        result = EmailDispatcher(config, transport).send_newsletter_verification(payload)

        assert result.success is True
        assert result.verification_url == "https://thecodemuse.com/verify-email?token=" + token
        assert parse_qs(urlparse(result.verification_url).query)["token"] == [token]
        assert result.verification_url in transport.sent[0].text_body

    def test_verification_failure_has_no_url(self, config):
        payload = NewsletterSignupPayload(email="g@example.com", verification_token="t" * 32,
                                          source="homepage")
        transport = RecordingTransport(error=OSError("network unreachable"))

        result = EmailDispatcher(config, transport).send_newsletter_verification(payload)

        assert result.success is False
        assert result.error == "network unreachable"
        assert result.verification_url is None

    def test_welcome_has_no_unsubscribe_header(self, config, transport):
        result = EmailDispatcher(config, transport).send_newsletter_welcome(
            NewsletterVerifiedPayload(email="g@example.com", first_name="Grace"))

        assert result.success is True
        assert transport.sent[0].headers == {}
        assert "Hi Grace," in transport.sent[0].text_body


def test_send_test_email(config, transport):
    result = EmailDispatcher(config, transport).send_test_email(
        TestEmailPayload(to="ops@example.com", subject="Ping", message="pong"))

    assert result.success is True
    assert transport.sent[0].subject == "Ping"
    assert "pong" in transport.sent[0].text_body


def test_verification_url_for():
    assert verification_url_for("https://a.io", "T") == "https://a.io/verify-email?token=T"


def test_each_send_is_attempted_once(config, contact):
    class CountingTransport(RecordingTransport):
        calls = 0

        def send(self, envelope):
            CountingTransport.calls += 1
            raise TimeoutError("timed out")

    EmailDispatcher(config, CountingTransport()).send_contact_welcome(contact)
    assert CountingTransport.calls == 1
