"""Security utilities for the login flow.

State comparison for CSRF protection and redirect address validation.
"""

from __future__ import annotations

import secrets
from urllib.parse import urlparse

from authflow.models.errors import StateMismatchError

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}


def validate_state(expected: str | None, actual: str | None) -> None:
    """Validate the callback state against the stored value.

    Exact, constant-time comparison. A missing value on either side is a
    mismatch.

    Args:
        expected: State stored when the login started
        actual: State echoed back in the callback

    Raises:
        StateMismatchError: If the values are missing or differ
    """
    if expected is None:
        raise StateMismatchError(
            "No stored state for this login attempt - it may have been started "
            "in another tab or already completed"
        )
    if actual is None:
        raise StateMismatchError("Callback is missing the state parameter")
    if not secrets.compare_digest(expected.encode("utf-8"), actual.encode("utf-8")):
        raise StateMismatchError("State parameter mismatch - possible CSRF attack")


def validate_redirect_uri(uri: str) -> bool:
    """Validate a redirect URI is HTTPS or HTTP on a loopback host.

    Args:
        uri: Redirect URI to validate

    Returns:
        True if the URI is acceptable
    """
    try:
        parsed = urlparse(uri)
        if not parsed.hostname:
            return False
        return parsed.scheme == "https" or (
            parsed.scheme == "http" and parsed.hostname in LOOPBACK_HOSTS
        )
    except ValueError:
        return False
