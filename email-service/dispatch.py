"""
dispatch.py — Email Dispatch Service
=====================================
Every send follows the same four steps:

1. Build the envelope (from / to / subject / headers)
2. Render text and HTML bodies
3. Hand off to the transport (exactly one attempt, no retry)
4. Normalize into a SendResult

A transport exception never escapes this layer. It is logged and returned
as SendResult.failed(); callers must look at .success.
"""

import logging
from dataclasses import dataclass

import templates
from config import Config
from errors import utc_timestamp
from templates import (
    Branding,
    ContactFormPayload,
    NewsletterSignupPayload,
    NewsletterVerifiedPayload,
    RenderedEmail,
    TestEmailPayload,
)
from transport import MailEnvelope, SmtpTransport, format_sender

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    verification_url: str | None = None

    @classmethod
    def ok(cls, message_id: str, verification_url: str | None = None) -> "SendResult":
        return cls(success=True, message_id=message_id, verification_url=verification_url)

    @classmethod
    def failed(cls, error: str) -> "SendResult":
        return cls(success=False, error=error or "Unknown transport error")


def verification_url_for(frontend_url: str, token: str) -> str:
    return f"{frontend_url}/verify-email?token={token}"


class EmailDispatcher:
    """Owns the process-wide transport handle; safe to share across requests."""

    def __init__(self, config: Config, transport: SmtpTransport):
        self.config = config
        self.transport = transport
        self.branding = Branding(
            from_name=config.from_name,
            from_email=config.from_email,
            frontend_url=config.frontend_url,
            admin_url=config.admin_url,
            unsubscribe_email=config.unsubscribe_email,
        )

    # ── Headers ───────────────────────────────────────────────────────────────

    def _normal_priority_headers(self, mailer: str) -> dict[str, str]:
        return {
            "List-Unsubscribe": f"<{self.branding.unsubscribe_mailto}>",
            "X-Mailer": mailer,
            "X-Priority": "3",
            "X-MSMail-Priority": "Normal",
        }

    # ── Core ──────────────────────────────────────────────────────────────────

    def _dispatch(self, operation: str, sender_name: str, to: str | list[str],
                  rendered: RenderedEmail, headers: dict[str, str] | None = None,
                  verification_url: str | None = None) -> SendResult:
        envelope = MailEnvelope(
            sender=format_sender(sender_name, self.config.from_email),
            to=to,
            subject=rendered.subject,
            html_body=rendered.html,
            text_body=rendered.text,
            headers=headers or {},
        )
        try:
            message_id = self.transport.send(envelope)
        except Exception as e:
            log.error(f"{operation} failed: to={', '.join(envelope.recipients)} error={e}")
            return SendResult.failed(str(e))

        log.info(f"{operation} sent: to={', '.join(envelope.recipients)} message_id={message_id}")
        return SendResult.ok(message_id, verification_url=verification_url)

    # ── Operations ────────────────────────────────────────────────────────────

    def send_contact_welcome(self, payload: ContactFormPayload) -> SendResult:
        rendered = templates.render_contact_welcome(payload, self.branding)
        return self._dispatch(
            "contact_welcome", self.config.from_name, payload.email, rendered,
            headers=self._normal_priority_headers(f"{self.config.from_name} Contact Form"),
        )

    def send_contact_admin_notice(self, payload: ContactFormPayload) -> SendResult:
        rendered = templates.render_contact_admin_notice(payload, self.branding)
        return self._dispatch(
            "contact_admin_notice", f"{self.config.from_name} Contact Form",
            self.config.admin_email, rendered,
            headers={
                "X-Mailer": f"{self.config.from_name} Contact Form",
                "X-Priority": "1",
                "X-MSMail-Priority": "High",
            },
        )

    def send_newsletter_verification(self, payload: NewsletterSignupPayload) -> SendResult:
        verification_url = verification_url_for(self.config.frontend_url, payload.verification_token)
        rendered = templates.render_newsletter_verification(payload, verification_url, self.branding)
        return self._dispatch(
            "newsletter_verification", f"{self.config.from_name} Newsletter", payload.email, rendered,
            headers=self._normal_priority_headers(f"{self.config.from_name} Newsletter"),
            verification_url=verification_url,
        )

    def send_newsletter_welcome(self, payload: NewsletterVerifiedPayload) -> SendResult:
        rendered = templates.render_newsletter_welcome(payload, self.branding)
        return self._dispatch(
            "newsletter_welcome", f"{self.config.from_name} Newsletter", payload.email, rendered,
        )

    def send_test_email(self, payload: TestEmailPayload) -> SendResult:
        rendered = templates.render_test_email(payload, self.branding, utc_timestamp())
        return self._dispatch("test_email", self.config.from_name, payload.to, rendered)
