"""
config.py — Process Configuration
==================================
Everything the service needs from its environment, validated once at startup.
A bad environment never produces a half-working service: load_config() either
returns a complete Config or raises ConfigError listing every problem.

Provider credentials are only required for the provider actually selected
by EMAIL_PROVIDER; the others are ignored.
"""

import os
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from errors import ConfigError

SERVICE_NAME = "muse-email-service"
SERVICE_VERSION = "1.0.0"

ENVIRONMENTS = ("development", "production", "test")
PROVIDERS = ("mailgun", "smtp", "sandbox")
LOG_LEVELS = ("error", "warn", "info", "debug")

# Fixed relay endpoints. Only the generic smtp provider takes host/port from the env.
MAILGUN_HOST = "smtp.mailgun.org"
MAILGUN_PORT = 587
SANDBOX_HOST = "smtp.ethereal.email"
SANDBOX_PORT = 587
SANDBOX_DEFAULT_CREDENTIAL = "test@ethereal.email"

MIN_API_KEY_LENGTH = 32


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    host: str
    port: int
    secure: bool       # implicit TLS; False means STARTTLS when offered
    user: str
    password: str
    domain: str | None = None


@dataclass(frozen=True)
class RateLimitConfig:
    window_ms: int
    max_requests: int

    @property
    def window_seconds(self) -> int:
        return max(1, self.window_ms // 1000)

    def as_limit_string(self) -> str:
        return f"{self.max_requests} per {self.window_seconds} seconds"


@dataclass(frozen=True)
class Config:
    port: int
    environment: str
    api_version: str
    provider: ProviderConfig
    from_email: str
    from_name: str
    admin_email: str
    unsubscribe_email: str
    frontend_url: str
    admin_url: str
    api_key: str
    rate_limit: RateLimitConfig
    log_level: str
    log_file: str | None = None
    smtp_timeout: float | None = None

    @property
    def allowed_origins(self) -> list[str]:
        return [self.frontend_url, self.admin_url, "http://localhost:3000", "http://localhost:1337"]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


class _Reader:
    """Collects problems instead of stopping at the first one."""

    def __init__(self, environ: Mapping[str, str]):
        self.env = environ
        self.problems: list[str] = []

    def raw(self, name: str) -> str | None:
        value = self.env.get(name)
        if value is None or value.strip() == "":
            return None
        return value.strip()

    def string(self, name: str, default: str | None = None, required: bool = False) -> str | None:
        value = self.raw(name)
        if value is None:
            if required:
                self.problems.append(f'"{name}" is required')
            return default
        return value

    def integer(self, name: str, default: int | None = None, required: bool = False) -> int | None:
        value = self.string(name, required=required)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            self.problems.append(f'"{name}" must be a number, got {value!r}')
            return default

    def number(self, name: str) -> float | None:
        value = self.string(name)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            self.problems.append(f'"{name}" must be a number, got {value!r}')
            return None

    def boolean(self, name: str, default: bool = False) -> bool:
        value = self.string(name)
        if value is None:
            return default
        lowered = value.lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
        self.problems.append(f'"{name}" must be a boolean, got {value!r}')
        return default

    def choice(self, name: str, choices: tuple[str, ...], default: str) -> str:
        value = self.string(name, default=default)
        if value not in choices:
            self.problems.append(f'"{name}" must be one of [{", ".join(choices)}], got {value!r}')
            return default
        return value

    def email(self, name: str, default: str | None = None, required: bool = False) -> str | None:
        value = self.string(name, default=default, required=required)
        if value is None:
            return None
        try:
            validate_email(value, check_deliverability=False, allow_smtputf8=False)
        except EmailNotValidError:
            self.problems.append(f'"{name}" must be a valid email')
        return value

    def url(self, name: str) -> str | None:
        value = self.string(name, required=True)
        if value is None:
            return None
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            self.problems.append(f'"{name}" must be a valid uri')
        return value.rstrip("/")


def _provider_config(r: _Reader, provider: str) -> ProviderConfig:
    if provider == "mailgun":
        return ProviderConfig(
            name="mailgun",
            host=MAILGUN_HOST,
            port=MAILGUN_PORT,
            secure=False,
            user=r.string("MAILGUN_USER", required=True) or "",
            password=r.string("MAILGUN_PASSWORD", required=True) or "",
            domain=r.string("MAILGUN_DOMAIN", required=True),
        )
    if provider == "smtp":
        return ProviderConfig(
            name="smtp",
            host=r.string("SMTP_HOST", required=True) or "",
            port=r.integer("SMTP_PORT", required=True) or 0,
            secure=r.boolean("SMTP_SECURE", default=False),
            user=r.string("SMTP_USER", required=True) or "",
            password=r.string("SMTP_PASS", required=True) or "",
        )
    return ProviderConfig(
        name="sandbox",
        host=SANDBOX_HOST,
        port=SANDBOX_PORT,
        secure=False,
        user=r.string("SANDBOX_USER", default=SANDBOX_DEFAULT_CREDENTIAL),
        password=r.string("SANDBOX_PASS", default=SANDBOX_DEFAULT_CREDENTIAL),
    )


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """
    Build the process Config from environment variables.
    Raises ConfigError with every violation found.
    """
    r = _Reader(os.environ if environ is None else environ)

    environment = r.choice("ENVIRONMENT", ENVIRONMENTS, "development")
    provider_name = r.choice("EMAIL_PROVIDER", PROVIDERS, "mailgun")
    provider = _provider_config(r, provider_name)

    api_key = r.string("API_KEY", required=True)
    if api_key is not None and len(api_key) < MIN_API_KEY_LENGTH:
        r.problems.append(f'"API_KEY" length must be at least {MIN_API_KEY_LENGTH} characters long')

    config = Config(
        port=r.integer("PORT", default=3001),
        environment=environment,
        api_version=r.string("API_VERSION", default="v1"),
        provider=provider,
        from_email=r.email("FROM_EMAIL", required=True),
        from_name=r.string("FROM_NAME", default="The Code Muse"),
        admin_email=r.email("ADMIN_EMAIL", required=True),
        unsubscribe_email=r.email("UNSUBSCRIBE_EMAIL", default="unsubscribe@thecodemuse.com"),
        frontend_url=r.url("FRONTEND_URL"),
        admin_url=r.url("ADMIN_URL"),
        api_key=api_key,
        rate_limit=RateLimitConfig(
            window_ms=r.integer("RATE_LIMIT_WINDOW_MS", default=900000),
            max_requests=r.integer("RATE_LIMIT_MAX_REQUESTS", default=100),
        ),
        log_level=r.choice("LOG_LEVEL", LOG_LEVELS, "info"),
        log_file=r.string("LOG_FILE"),
        smtp_timeout=r.number("SMTP_TIMEOUT"),
    )

    if r.problems:
        raise ConfigError(r.problems)
    return config
