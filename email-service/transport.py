"""
transport.py — Email Transport Layer
=====================================
This is the ONLY file that knows about SMTP (or any delivery mechanism).
Everything above this layer speaks MailEnvelope and gets back a message id.

Providers (selected once at startup by EMAIL_PROVIDER):
  mailgun  — Mailgun SMTP relay, smtp.mailgun.org:587 with STARTTLS
  smtp     — any SMTP server from SMTP_HOST/SMTP_PORT (SMTP_SECURE for implicit TLS)
  sandbox  — Ethereal test inbox; captures mail, nothing is really delivered

send() raises on failure (smtplib.SMTPException, OSError). Converting that
into a result is the dispatcher's job, not ours.
"""

import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

from config import ProviderConfig
from errors import EmailServiceError

log = logging.getLogger(__name__)

SANDBOX_PREVIEW_URL = "https://ethereal.email/messages"


@dataclass
class MailEnvelope:
    """Normalized outbound message. Built per send, never reused."""
    sender: str
    to: str | list[str]
    subject: str
    html_body: str
    text_body: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def recipients(self) -> list[str]:
        return [self.to] if isinstance(self.to, str) else list(self.to)


def format_sender(display_name: str, address: str) -> str:
    return formataddr((display_name, address))


def header_value(value: str) -> str:
    """Fold any CR/LF into single spaces. A header value is one line."""
    return " ".join(value.splitlines())


class SmtpTransport:
    """
    Pre-configured SMTP handle. One instance per process, shared read-only;
    every send opens its own connection so concurrent requests never share one.
    """

    def __init__(self, provider: ProviderConfig, timeout: float | None = None):
        self.provider = provider
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.provider.name

    def _build_mime(self, envelope: MailEnvelope, message_id: str) -> MIMEMultipart:
        """Build MIME message with text and HTML alternatives."""
        mime = MIMEMultipart('alternative')
        mime['Subject'] = header_value(envelope.subject)
        mime['From'] = envelope.sender
        mime['To'] = ", ".join(envelope.recipients)
        mime['Message-ID'] = message_id
        for name, value in envelope.headers.items():
            mime[name] = header_value(value)

        mime.attach(MIMEText(envelope.text_body, 'plain', 'utf-8'))
        mime.attach(MIMEText(envelope.html_body, 'html', 'utf-8'))
        return mime

    def _connect(self) -> smtplib.SMTP:
        kwargs = {} if self.timeout is None else {"timeout": self.timeout}
        if self.provider.secure:
            return smtplib.SMTP_SSL(self.provider.host, self.provider.port, **kwargs)
        return smtplib.SMTP(self.provider.host, self.provider.port, **kwargs)

    def send(self, envelope: MailEnvelope) -> str:
        """Deliver one envelope. Returns the Message-ID it was sent with."""
        domain = self.provider.domain or envelope.sender.rsplit('@', 1)[-1].rstrip('>')
        message_id = make_msgid(domain=domain)
        mime = self._build_mime(envelope, message_id)

        log.info(f"{message_id} Connecting to SMTP {self.provider.host}:{self.provider.port} "
                 f"(mode={self.name})")
        with self._connect() as server:
            if not self.provider.secure:
                server.ehlo()
                if server.has_extn('starttls'):
                    server.starttls()
                    server.ehlo()
            if self.provider.user and self.provider.password:
                server.login(self.provider.user, self.provider.password)
            server.sendmail(envelope.sender, envelope.recipients, mime.as_string())

        if self.name == "sandbox":
            log.info(f"{message_id} Captured (sandbox, not delivered): to={', '.join(envelope.recipients)} "
                     f"preview={SANDBOX_PREVIEW_URL}")
        else:
            log.info(f"{message_id} Delivered: to={', '.join(envelope.recipients)} "
                     f"subject='{header_value(envelope.subject)}'")
        return message_id

    def summary(self) -> dict:
        """Return transport config for logging and the detailed health report."""
        return {
            "host": self.provider.host,
            "port": self.provider.port,
            "mode": self.name,
            "auth": bool(self.provider.user),
            "tls": "implicit" if self.provider.secure else "starttls",
        }


TRANSPORTS = {
    "mailgun": SmtpTransport,
    "smtp": SmtpTransport,
    "sandbox": SmtpTransport,
}


def select_transport(provider: ProviderConfig, timeout: float | None = None) -> SmtpTransport:
    """Map the configured provider onto its transport handle. Fatal if unknown."""
    transport_cls = TRANSPORTS.get(provider.name)
    if transport_cls is None:
        raise EmailServiceError(
            f"Unsupported email provider: {provider.name}",
            code="UNSUPPORTED_PROVIDER",
        )
    log.info(f"Using {provider.name} email provider ({provider.host}:{provider.port})")
    return transport_cls(provider, timeout=timeout)
