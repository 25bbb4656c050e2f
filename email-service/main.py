"""
Muse Email Service
==================
Language  : Python
Framework : Flask + Gunicorn

Architecture: small isolated layers behind the /api/<version> blueprint.
  config.py      — environment → immutable Config (fails fast)
  transport.py   — SMTP handle for mailgun / smtp / sandbox (only file that knows SMTP)
  templates.py   — payload types and text/HTML renderers
  dispatch.py    — envelope → render → send → SendResult
  validation.py  — per-route field rules
  auth.py        — X-API-Key guard
  routes.py      — controllers, SendResult → HTTP status
  health.py      — /health and /health/detailed
  errors.py      — error taxonomy and the terminal JSON error handler

Run:  gunicorn 'main:create_app()'   or   python main.py
"""

import logging
import logging.handlers
import os
import sys
import time
import uuid

from flask import Flask, g, has_request_context, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

import health
from config import Config, SERVICE_NAME, load_config
from dispatch import EmailDispatcher
from errors import ConfigError, register_error_handlers
from routes import build_api_blueprint
from transport import select_transport

LOG_FORMAT = '%(asctime)s [email-service] %(levelname)s [%(request_id)s] %(message)s'
LOG_LEVELS = {"error": logging.ERROR, "warn": logging.WARNING, "info": logging.INFO, "debug": logging.DEBUG}
MAX_BODY_BYTES = 10 * 1024 * 1024

log = logging.getLogger(__name__)


class RequestIdFilter(logging.Filter):
    """Stamps every record with the current request id, or "-" outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = g.get("request_id", "-") if has_request_context() else "-"
        return True


def configure_logging(level: str = "info", log_file: str | None = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=10,
        ))
    for handler in handlers:
        handler.addFilter(RequestIdFilter())
    logging.basicConfig(level=LOG_LEVELS.get(level, logging.INFO), format=LOG_FORMAT, handlers=handlers)


def security_headers(response):
    """Add security headers to all responses"""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    response.headers['Referrer-Policy'] = 'no-referrer'
    response.headers['Cross-Origin-Resource-Policy'] = 'same-origin'
    return response


def _register_request_hooks(app: Flask, cfg: Config) -> None:
    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        g.started = time.perf_counter()

    @app.after_request
    def log_request(response):
        response.headers['X-Request-ID'] = g.get('request_id', '')
        if cfg.is_production and request.path == '/health':
            return response

        elapsed_ms = (time.perf_counter() - g.get('started', time.perf_counter())) * 1000
        line = (f"HTTP {request.method} {request.path} "
                f"{response.status_code} {elapsed_ms:.1f}ms "
                f"remote={request.remote_addr} agent={request.headers.get('User-Agent', '-')}")
        if response.status_code >= 500:
            log.error(line)
        elif response.status_code >= 400:
            log.warning(line)
        else:
            log.info(line)
        return response

    app.after_request(security_headers)


def create_app(cfg: Config | None = None, transport=None) -> Flask:
    """
    Build the Flask app. Config comes from the environment unless given;
    the transport is selected from config unless injected (tests do this).
    """
    cfg = cfg or load_config()
    configure_logging(cfg.log_level, cfg.log_file)

    transport = transport or select_transport(cfg.provider, timeout=cfg.smtp_timeout)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_BODY_BYTES
    app.config["SERVICE_CONFIG"] = cfg
    app.config["DISPATCHER"] = EmailDispatcher(cfg, transport)
    app.config["RATE_LIMIT_WINDOW_SECONDS"] = cfg.rate_limit.window_seconds

    _register_request_hooks(app, cfg)

    CORS(app, origins=cfg.allowed_origins, supports_credentials=True)
    Limiter(
        get_remote_address,
        app=app,
        default_limits=[cfg.rate_limit.as_limit_string()],
        storage_uri="memory://",
        headers_enabled=True,
    )

    app.register_blueprint(health.bp)
    app.register_blueprint(
        build_api_blueprint(include_test_route=not cfg.is_production),
        url_prefix=f"/api/{cfg.api_version}",
    )
    register_error_handlers(app, cfg.environment)

    log.info(f"{SERVICE_NAME} configured: environment={cfg.environment} "
             f"provider={cfg.provider.name} api=/api/{cfg.api_version}")
    return app


if __name__ == '__main__':
    from dotenv import load_dotenv

    load_dotenv()
    try:
        config = load_config()
    except ConfigError as e:
        configure_logging()
        log.error(str(e))
        sys.exit(1)

    application = create_app(config)
    log.info(f"Email Service (Python) starting on :{config.port}")
    log.info(f"  Environment : {config.environment}")
    log.info(f"  Provider    : {config.provider.name}")
    log.info(f"  Health check: http://localhost:{config.port}/health")
    application.run(host='0.0.0.0', port=config.port)
