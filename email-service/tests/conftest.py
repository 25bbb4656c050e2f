"""Shared fixtures: a valid environment, a recording transport, and a Flask client."""

import pytest

from config import load_config
from main import create_app

API_KEY = "k" * 40

BASE_ENV = {
    "ENVIRONMENT": "test",
    "EMAIL_PROVIDER": "smtp",
    "SMTP_HOST": "mail.example.com",
    "SMTP_PORT": "2525",
    "SMTP_USER": "mailer",
    "SMTP_PASS": "secret",
    "FROM_EMAIL": "hello@thecodemuse.com",
    "ADMIN_EMAIL": "admin@thecodemuse.com",
    "FRONTEND_URL": "https://thecodemuse.com",
    "ADMIN_URL": "https://admin.thecodemuse.com",
    "API_KEY": API_KEY,
    "LOG_LEVEL": "debug",
}


class RecordingTransport:
    """Stands in for SmtpTransport: keeps every envelope, optionally fails."""

    name = "smtp"

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent = []

    def send(self, envelope) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append(envelope)
        return f"<msg-{len(self.sent)}@thecodemuse.com>"

    def summary(self) -> dict:
        return {"host": "mail.example.com", "port": 2525, "mode": "smtp", "auth": True, "tls": "starttls"}


@pytest.fixture
def env():
    return dict(BASE_ENV)


@pytest.fixture
def config(env):
    return load_config(env)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def app(config, transport):
    return create_app(config, transport=transport)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"X-API-Key": API_KEY}


@pytest.fixture
def contact_body():
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "subject": "Engines",
        "message": "I would like to talk about the analytical engine.",
    }
