"""Token models.

Contains the token exchange request/response and the in-memory access token
held by the token store.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field

from authflow.models.flow import LoginResult


@dataclass(frozen=True)
class AccessToken:
    """The single live bearer token and its optional absolute expiry."""

    value: str = field(repr=False)
    expires_at: float | None = None  # Unix timestamp

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False  # No known expiry, valid until cleared
        if now is None:
            now = time.time()
        return now >= self.expires_at


@dataclass(frozen=True)
class TokenInfo:
    """Diagnostic view of the token store."""

    has_token: bool
    expires_at: datetime | None = None


@dataclass(frozen=True)
class TokenRequest:
    """Token exchange request parameters (RFC 6749 Section 4.1.3).

    Public client: no client secret is ever sent. ``redirect_uri`` must be the
    exact value used in the authorization request.
    """

    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    code_verifier: str = field(repr=False)  # RFC 7636 PKCE

    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Returns:
            Dictionary suitable for httpx data parameter
        """
        return {
            "grant_type": self.grant_type,
            "client_id": self.client_id,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": self.code_verifier,
        }


class TokenResponse(BaseModel):
    """Successful token endpoint response (RFC 6749 Section 5.1)."""

    access_token: str = Field(min_length=1)
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds until expiry
    id_token: str | None = None
    scope: str | None = None

    def to_login_result(self) -> LoginResult:
        return LoginResult(
            access_token=self.access_token,
            id_token=self.id_token,
            token_type=self.token_type,
            expires_in=self.expires_in,
            scope=self.scope,
        )
