"""Exception hierarchy for the authorization code + PKCE login flow.

Provides specific exception types for different failure modes so callers can
pick the next action (restart login, show factor guidance, show connectivity
guidance) without parsing messages.
"""

from __future__ import annotations


class AuthFlowError(Exception):
    """Base exception for all login flow errors."""

    pass


class ConfigurationError(AuthFlowError):
    """Raised when client configuration is missing or invalid."""

    pass


class LoginInitiationError(AuthFlowError):
    """Raised when secret generation or ephemeral storage fails at login start.

    Local failure; no network call has been made. Not retryable.
    """

    pass


class AuthorizationError(AuthFlowError):
    """Raised when the identity provider rejects the authorization request.

    The provider's error code and description are kept verbatim.
    """

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        error_uri: str | None = None,
    ):
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri

        message = f"Authorization failed: {error}"
        if error_description:
            message += f" - {error_description}"
        if error_uri:
            message += f" (see: {error_uri})"
        super().__init__(message)


class MfaRequiredError(AuthorizationError):
    """Raised when the provider denied access pending a second factor or policy.

    Recoverable by restarting login with a factor-completion prompt.
    """

    pass


class AuthorizationCallbackError(AuthFlowError):
    """Raised when callback data from the identity provider is malformed.

    This indicates the redirect carried unusable data, not that our callback
    handling code failed.
    """

    pass


class StateMismatchError(AuthorizationCallbackError):
    """Raised when the callback state does not match the stored state.

    Covers a missing stored value (e.g. callback opened in another tab) as well
    as a mismatch, either of which could indicate a CSRF attack.
    """

    pass


class TokenExchangeError(AuthFlowError):
    """Raised when the token endpoint rejects the authorization code."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        error: str | None = None,
    ):
        self.status_code = status_code
        self.body = body
        self.error = error
        super().__init__(message)


class StepUpIncompleteError(TokenExchangeError):
    """Raised on an ``invalid_grant`` rejection of the exchange.

    The usual cause is an interrupted second-factor challenge. Transient: the
    caller may restart the login from the beginning.
    """

    pass


class NetworkUnreachableError(AuthFlowError):
    """Raised when an endpoint could not be reached at the transport level.

    Commonly caused by DNS, TLS, proxy or cross-origin policy problems rather
    than by authentication failures.
    """

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(message)


class NotAuthenticatedError(AuthFlowError):
    """Raised when an API call is attempted without a valid access token."""

    pass


class ApiError(AuthFlowError):
    """Raised when the downstream API answers with a non-success status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API call failed ({status_code}): {body}")
