"""Best-effort JWT inspection for diagnostic logging.

Reads the header and claims with PyJWT without verifying the signature.
This is never a security control; use it only to log what the provider
issued.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import jwt

logger = logging.getLogger(__name__)


def decode_segments(token: str) -> tuple[dict[str, Any], dict[str, Any]] | None:
    """Decode a compact JWT into (header, payload).

    Returns:
        The unverified header and claims, or None if the token is not a JWT
    """
    try:
        header = jwt.get_unverified_header(token)
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None
    return header, payload


def log_token_claims(token: str, label: str) -> None:
    """Log the interesting claims of a token at DEBUG level."""
    decoded = decode_segments(token)
    if decoded is None:
        logger.debug(f"{label} token is opaque or not decodable")
        return

    header, payload = decoded
    logger.debug(f"{label} token header: {header}")
    logger.debug(f"{label} token issuer: {payload.get('iss')}")
    logger.debug(f"{label} token audience: {payload.get('aud')}")

    exp = payload.get("exp")
    if isinstance(exp, (int, float)):
        expires = datetime.fromtimestamp(exp, tz=timezone.utc).isoformat()
        logger.debug(f"{label} token expires at: {expires}")

    # Okta puts scopes in scp, other issuers in scope
    if "scp" in payload:
        logger.debug(f"{label} token scopes (scp): {payload['scp']}")
    if "scope" in payload:
        logger.debug(f"{label} token scopes (scope): {payload['scope']}")
