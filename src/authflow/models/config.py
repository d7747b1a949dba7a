"""Client configuration for the identity provider integration.

Holds the fixed, pre-registered values every login attempt uses: issuer,
public client id, redirect address and scopes.
"""

from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from authflow.models.errors import ConfigurationError
from authflow.services.security import validate_redirect_uri

DEFAULT_SCOPES = ["openid", "profile", "email"]

_TRUTHY = {"1", "true", "yes", "on"}


class OAuthClientConfig(BaseModel):
    """Public client configuration for one issuer."""

    issuer: str
    client_id: str = Field(min_length=1)
    redirect_uri: str
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))

    # Forces re-authentication, including any step-up factor
    prompt_login: bool = False

    # Legacy fragment-delivered tokens; off unless explicitly enabled
    allow_implicit: bool = False

    api_base_url: str | None = None

    @field_validator("issuer")
    @classmethod
    def validate_issuer(cls, v: str) -> str:
        if not validate_redirect_uri(v):
            raise ValueError(f"Issuer must use HTTPS or loopback HTTP: {v}")
        return v.rstrip("/")

    @field_validator("redirect_uri")
    @classmethod
    def validate_redirect(cls, v: str) -> str:
        """Redirect address must be HTTPS or a loopback HTTP address."""
        if not validate_redirect_uri(v):
            raise ValueError(f"Redirect URI must use HTTPS or loopback HTTP: {v}")
        return v

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: list[str]) -> list[str]:
        scopes = [s for s in v if s]
        if not scopes:
            raise ValueError("At least one scope is required")
        return scopes

    @property
    def scope(self) -> str:
        """Scopes joined with spaces, as sent on the wire."""
        return " ".join(self.scopes)

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.issuer}/v1/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.issuer}/v1/token"

    @classmethod
    def from_env(cls, env_file: str | None = None) -> OAuthClientConfig:
        """Build configuration from ``AUTHFLOW_*`` environment variables.

        A ``.env`` file (``env_file``, or the nearest one above the working
        directory) is loaded first; variables already set in the
        environment win.

        Raises:
            ConfigurationError: If a required variable is missing or invalid
        """
        load_dotenv(env_file or find_dotenv(usecwd=True))

        missing = [
            name
            for name in (
                "AUTHFLOW_ISSUER",
                "AUTHFLOW_CLIENT_ID",
                "AUTHFLOW_REDIRECT_URI",
            )
            if not os.getenv(name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        values: dict = {
            "issuer": os.getenv("AUTHFLOW_ISSUER"),
            "client_id": os.getenv("AUTHFLOW_CLIENT_ID"),
            "redirect_uri": os.getenv("AUTHFLOW_REDIRECT_URI"),
            "prompt_login": _env_flag("AUTHFLOW_PROMPT_LOGIN"),
            "allow_implicit": _env_flag("AUTHFLOW_ALLOW_IMPLICIT"),
            "api_base_url": os.getenv("AUTHFLOW_API_BASE_URL") or None,
        }
        scopes = os.getenv("AUTHFLOW_SCOPES")
        if scopes:
            values["scopes"] = scopes.split()

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY
