"""
auth.py — API Key Guard
========================
Every /api route goes through check_api_key() before validation runs.
The caller must send the shared secret in X-API-Key.
"""

import hmac
import logging

from flask import request

from errors import AuthenticationFailure

log = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


def _caller_context() -> str:
    return (f"ip={request.remote_addr} url={request.path} "
            f"user_agent={request.headers.get('User-Agent', '-')}")


def check_api_key(expected_key: str) -> None:
    """Raises AuthenticationFailure unless the header matches expected_key exactly."""
    provided = request.headers.get(API_KEY_HEADER)

    if not provided:
        log.warning(f"API request without API key: {_caller_context()}")
        raise AuthenticationFailure("API key is required")

    if not hmac.compare_digest(provided.encode(), expected_key.encode()):
        log.warning(f"Invalid API key provided: {_caller_context()} "
                    f"key={provided[:8]}...")
        raise AuthenticationFailure("Invalid API key")

    log.debug(f"API request authenticated: {_caller_context()}")
