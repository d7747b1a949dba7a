"""Authorization code + PKCE login flow.

Drives both halves of the login: generating the per-attempt secrets and
sending the user agent to the identity provider, then validating the callback
and exchanging the code for tokens. The two halves may run in different
processes or page loads; the ephemeral store is the only bridge between them.
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlparse

from authflow.models.config import OAuthClientConfig
from authflow.models.errors import (
    AuthFlowError,
    AuthorizationCallbackError,
    AuthorizationError,
    LoginInitiationError,
    MfaRequiredError,
    StateMismatchError,
)
from authflow.models.flow import (
    AuthorizationRequest,
    CallbackResult,
    FlowStage,
    LoginResult,
)
from authflow.models.tokens import TokenRequest
from authflow.primitives.jwt import log_token_claims
from authflow.primitives.pkce import PKCEManager
from authflow.services.host import (
    NavigationStrategy,
    UserAgentHost,
    select_navigation_strategy,
)
from authflow.services.security import validate_state
from authflow.services.storage import CODE_VERIFIER_KEY, STATE_KEY, EphemeralStore
from authflow.services.tokens import OAuth2TokenClient

logger = logging.getLogger(__name__)

# Description markers the provider uses when access is denied pending a
# sign-on policy or second factor
MFA_MARKERS = ("policy", "mfa", "multi-factor", "factor")


class AuthFlowEngine:
    """Orchestrates the authorization code flow with PKCE for a public client.

    Handles:
    - PKCE secret and state generation
    - Authorization URL construction and user-agent navigation
    - Callback parsing, provider error mapping and state validation
    - Authorization code to token exchange

    The engine never stores tokens; the caller owns that decision.
    """

    def __init__(
        self,
        config: OAuthClientConfig,
        storage: EphemeralStore,
        host: UserAgentHost,
        token_client: OAuth2TokenClient | None = None,
        navigation: NavigationStrategy | None = None,
        pkce_manager: PKCEManager | None = None,
    ):
        """Initialize the flow engine.

        Args:
            config: Issuer, client and redirect configuration
            storage: Single-use store for state and code verifier
            host: User-agent host (current address, navigation)
            token_client: Token endpoint client, created if omitted
            navigation: Navigation strategy, selected from the host if omitted
            pkce_manager: PKCE secret generator, created if omitted
        """
        self.config = config
        self._storage = storage
        self._host = host
        self._token_client = token_client or OAuth2TokenClient()
        self._navigation = navigation or select_navigation_strategy(host)
        self._pkce_manager = pkce_manager or PKCEManager()

    @property
    def redirect_uri(self) -> str:
        return self.config.redirect_uri

    @property
    def client_id(self) -> str:
        return self.config.client_id

    def prepare_login(self, prompt_login: bool | None = None) -> str:
        """Generate and persist the attempt's secrets, return the authorization URL.

        Args:
            prompt_login: Force re-authentication (``prompt=login``);
                defaults to the configured value

        Returns:
            The authorization URL the user agent should visit

        Raises:
            LoginInitiationError: If secret generation or storage fails
        """
        logger.info("Starting authorization code + PKCE login")

        session = self._pkce_manager.generate_session()

        try:
            self._storage.put(STATE_KEY, session.state)
            self._storage.put(CODE_VERIFIER_KEY, session.code_verifier)
        except (OSError, ValueError, TypeError) as e:
            # A half-written pair must not outlive the failed attempt
            self._discard_secrets()
            raise LoginInitiationError(f"Failed to persist login secrets: {e}") from e

        if prompt_login is None:
            prompt_login = self.config.prompt_login

        auth_request = AuthorizationRequest(
            authorization_endpoint=self.config.authorization_endpoint,
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            scope=self.config.scope,
            state=session.state,
            code_challenge=session.code_challenge,
            code_challenge_method=session.code_challenge_method,
            prompt="login" if prompt_login else None,
        )
        authorization_url = auth_request.build_authorization_url()

        logger.debug(
            f"Authorization request: client_id={self.config.client_id}, "
            f"redirect_uri={self.config.redirect_uri}, scope={self.config.scope}, "
            f"state_length={len(session.state)}, "
            f"verifier_length={len(session.code_verifier)}, "
            f"prompt={auth_request.prompt}"
        )

        return authorization_url

    def start_login(self, prompt_login: bool | None = None) -> None:
        """Begin a login by sending the user agent to the identity provider.

        Raises:
            LoginInitiationError: If secret generation or storage fails
        """
        authorization_url = self.prepare_login(prompt_login)
        logger.info(f"Redirecting user agent to {self.config.authorization_endpoint}")
        self._navigation(authorization_url)

    async def complete_login(self, callback_uri: str | None = None) -> LoginResult:
        """Handle the redirect back from the identity provider.

        Parses the callback, validates state (CSRF protection), exchanges the
        code for tokens and returns them. The stored state and code verifier
        are removed before this returns or raises.

        Args:
            callback_uri: Full callback URL; the host's current address if omitted

        Returns:
            LoginResult: The tokens for the caller to store

        Raises:
            AuthorizationError: If the provider returned an error
            MfaRequiredError: If access was denied pending a second factor
            AuthorizationCallbackError: If the callback carries no code
            StateMismatchError: If state is missing or does not match
            TokenExchangeError: If the token endpoint rejects the code
            StepUpIncompleteError: If the grant is rejected as invalid
            NetworkUnreachableError: If the token endpoint cannot be reached
        """
        stage = FlowStage.PARSE_CALLBACK
        try:
            if callback_uri is None:
                callback_uri = self._host.current_address()
            if not callback_uri:
                raise AuthorizationCallbackError("No callback address to process")

            callback = self.parse_callback(callback_uri)
            self._check_callback(callback)

            stage = FlowStage.VALIDATE_STATE
            validate_state(self._storage.get(STATE_KEY), callback.state)
            logger.debug("State parameter validated")

            if callback.is_implicit_flow():
                result = self._accept_implicit(callback)
            else:
                stage = FlowStage.EXCHANGE_TOKEN
                result = await self._exchange_code(callback)

            stage = FlowStage.DONE
            logger.info("Login completed")
            return result

        except AuthFlowError as e:
            logger.warning(f"Login failed during {stage.value}: {e}")
            raise
        finally:
            self._discard_secrets()

    def parse_callback(self, callback_uri: str) -> CallbackResult:
        """Parse a callback URL into a CallbackResult.

        Query parameters carry the code flow response; the fragment carries
        the legacy implicit flow response. The query wins when both exist.

        Raises:
            AuthorizationCallbackError: If the URL is malformed
        """
        try:
            parsed = urlparse(callback_uri)
            query_params = parse_qs(parsed.query)
            fragment_params = parse_qs(parsed.fragment)
        except ValueError as e:
            raise AuthorizationCallbackError(
                f"Failed to parse callback URL: {e}"
            ) from e

        def has_response(params: dict[str, list[str]]) -> bool:
            return any(k in params for k in ("code", "error", "access_token"))

        params = query_params
        if not has_response(query_params) and has_response(fragment_params):
            params = fragment_params

        # Extract single values from parameter lists
        def get_single_param(key: str) -> str | None:
            values = params.get(key, [])
            return values[0] if values else None

        expires_in = get_single_param("expires_in")

        return CallbackResult(
            code=get_single_param("code"),
            state=get_single_param("state"),
            access_token=get_single_param("access_token"),
            id_token=get_single_param("id_token"),
            expires_in=int(expires_in) if expires_in and expires_in.isdigit() else None,
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
            error_uri=get_single_param("error_uri"),
        )

    def _check_callback(self, callback: CallbackResult) -> None:
        if callback.is_error():
            logger.warning(
                f"Identity provider returned an error: {callback.error} - "
                f"{callback.error_description}"
            )
            error_type = AuthorizationError
            if callback.error == "access_denied" and _mentions_mfa(
                callback.error_description
            ):
                error_type = MfaRequiredError
            raise error_type(
                callback.error,
                callback.error_description,
                callback.error_uri,
            )

        if not callback.is_code_flow() and not callback.is_implicit_flow():
            raise AuthorizationCallbackError(
                "Missing authorization code in callback. Please try logging in again."
            )

    async def _exchange_code(self, callback: CallbackResult) -> LoginResult:
        code_verifier = self._storage.get(CODE_VERIFIER_KEY)
        if not code_verifier:
            raise StateMismatchError(
                "No stored PKCE code verifier for this login attempt"
            )

        token_request = TokenRequest(
            token_endpoint=self.config.token_endpoint,
            code=callback.code,
            redirect_uri=self.config.redirect_uri,
            client_id=self.config.client_id,
            code_verifier=code_verifier,
        )

        token_response = await self._token_client.exchange_code_for_token(
            token_request
        )

        log_token_claims(token_response.access_token, "Access")
        if token_response.id_token:
            log_token_claims(token_response.id_token, "ID")

        return token_response.to_login_result()

    def _accept_implicit(self, callback: CallbackResult) -> LoginResult:
        if not self.config.allow_implicit:
            raise AuthorizationCallbackError(
                "Callback carries tokens in the fragment (implicit flow), "
                "which is not supported. Use the authorization code flow."
            )

        logger.warning(
            "Accepting implicit flow tokens from the URL fragment - this flow is "
            "deprecated and exposes the token in browser history"
        )
        log_token_claims(callback.access_token, "Access")
        return LoginResult(
            access_token=callback.access_token,
            id_token=callback.id_token,
            expires_in=callback.expires_in,
        )

    def _discard_secrets(self) -> None:
        # Single-use: never leave a verifier behind for a later attempt.
        # Delete failures are logged, never raised.
        for key in (STATE_KEY, CODE_VERIFIER_KEY):
            try:
                self._storage.delete(key)
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Failed to discard login secret {key}: {e}")
        logger.debug("Cleaned up login secrets")

    async def close(self) -> None:
        """Close the token client."""
        await self._token_client.close()


def _mentions_mfa(description: str | None) -> bool:
    if not description:
        return False
    lowered = description.lower()
    return any(marker in lowered for marker in MFA_MARKERS)
