"""PKCE (Proof Key for Code Exchange) manager.

Implements RFC 7636 parameter generation to prevent authorization code
interception attacks by a different client.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from authflow.models.errors import LoginInitiationError
from authflow.models.security import PKCESession

# 32 random bytes -> 43 base64url characters
VERIFIER_BYTES = 32
STATE_BYTES = 24


class PKCEManager:
    """Generates the per-attempt PKCE secrets and state.

    This implementation follows RFC 7636 requirements:
    - Uses S256 code challenge method (SHA256 + base64url, unpadded)
    - Draws the verifier and state from the OS CSPRNG
    """

    def generate_session(self) -> PKCESession:
        """Generate new secrets for a login attempt.

        Returns:
            PKCESession: Immutable secrets for this attempt

        Raises:
            LoginInitiationError: If no secure random source is available
        """
        try:
            code_verifier = self._generate_code_verifier()
            code_challenge = compute_code_challenge(code_verifier)
            state = self._generate_state()

            return PKCESession(
                state=state,
                code_verifier=code_verifier,
                code_challenge=code_challenge,
                code_challenge_method="S256",
            )

        except (NotImplementedError, OSError, ValueError) as e:
            raise LoginInitiationError(
                f"Failed to generate PKCE parameters: {e}"
            ) from e

    def _generate_code_verifier(self) -> str:
        """Generate a cryptographically secure code verifier.

        RFC 7636 Section 4.1: 43-128 characters from the unreserved set. The
        base64url alphabet is a subset of it.
        """
        return _b64url(secrets.token_bytes(VERIFIER_BYTES))

    def _generate_state(self) -> str:
        """Generate an unguessable state parameter for CSRF protection."""
        return secrets.token_urlsafe(STATE_BYTES)


def compute_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

    Args:
        code_verifier: The code verifier to hash

    Returns:
        Base64url-encoded SHA256 hash of the code verifier, without padding
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _b64url(digest)


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")
