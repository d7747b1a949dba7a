"""Authorization flow models.

Contains models for the authorization request, the parsed callback and the
result handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode


class FlowStage(str, Enum):
    """Ordered stages of completing a login."""

    PARSE_CALLBACK = "parse_callback"
    VALIDATE_STATE = "validate_state"
    EXCHANGE_TOKEN = "exchange_token"
    DONE = "done"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the code + PKCE flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    state: str
    code_challenge: str
    code_challenge_method: str = "S256"
    prompt: str | None = None

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "state": self.state,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
        }

        if self.prompt:
            params["prompt"] = self.prompt

        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class CallbackResult:
    """Parameters extracted from the redirect back to the callback address.

    The code flow delivers ``code`` in the query; the legacy implicit flow
    delivers ``access_token``/``id_token`` in the fragment.
    """

    code: str | None = None
    state: str | None = None
    access_token: str | None = None
    id_token: str | None = None
    expires_in: int | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_error(self) -> bool:
        return self.error is not None

    def is_code_flow(self) -> bool:
        return self.error is None and self.code is not None

    def is_implicit_flow(self) -> bool:
        return self.error is None and self.code is None and self.access_token is not None


@dataclass(frozen=True)
class LoginResult:
    """Tokens obtained by a completed login.

    The caller decides where to keep them; the flow engine never stores them.
    """

    access_token: str
    id_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None
    scope: str | None = None
