"""Token endpoint client.

Implements the RFC 6749 authorization code exchange with the PKCE
code_verifier (RFC 7636) for a public client.
"""

from __future__ import annotations

import json
import logging

import httpx
from pydantic import ValidationError

from authflow.models.errors import (
    NetworkUnreachableError,
    StepUpIncompleteError,
    TokenExchangeError,
)
from authflow.models.tokens import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)


class OAuth2TokenClient:
    """Exchanges authorization codes for tokens at the token endpoint.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    No timeout is imposed unless one is given: callers bound the exchange
    themselves, e.g. with ``asyncio.wait_for``.
    """

    def __init__(self, timeout: float | None = None):
        """Initialize the token client.

        Args:
            timeout: HTTP request timeout in seconds, None for no timeout
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> OAuth2TokenClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def exchange_code_for_token(
        self, token_request: TokenRequest
    ) -> TokenResponse:
        """Exchange authorization code for access token.

        Args:
            token_request: Token exchange request parameters

        Returns:
            TokenResponse: Successful token response

        Raises:
            NetworkUnreachableError: If the token endpoint cannot be reached
            StepUpIncompleteError: If the grant was rejected as invalid (400)
            TokenExchangeError: For any other rejection or malformed response
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        form_data = token_request.to_form_data()

        # Log request details (without sensitive data)
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}, "
            f"redirect_uri={form_data['redirect_uri']}"
        )

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers=headers,
            )
        except httpx.TransportError as e:
            raise NetworkUnreachableError(
                f"Could not reach token endpoint: {e}",
                url=token_request.token_endpoint,
            ) from e
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"HTTP error during token exchange: {e}") from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Parse token endpoint response into TokenResponse.

        Args:
            response: HTTP response from token endpoint

        Returns:
            TokenResponse: Parsed success response

        Raises:
            TokenExchangeError: If the response is an error or cannot be parsed
        """
        status = response.status_code
        logger.debug(f"Token exchange response status: {status}")

        if not 200 <= status < 300:
            body = response.text
            error_code = _extract_error_code(body)

            logger.warning(
                f"Token exchange failed with {status}: {error_code or 'no error code'}"
            )

            # Usually an interrupted second-factor challenge
            if status == 400 and error_code == "invalid_grant":
                raise StepUpIncompleteError(
                    "Authorization grant was rejected; the sign-in step-up may "
                    "not have completed. Restart the login to retry.",
                    status_code=status,
                    body=body,
                    error=error_code,
                )
            raise TokenExchangeError(
                f"Token exchange failed ({status}): {body}",
                status_code=status,
                body=body,
                error=error_code,
            )

        try:
            response_data = response.json()
        except ValueError as e:
            raise TokenExchangeError(
                f"Invalid token response format: {e}",
                status_code=status,
                body=response.text,
            ) from e

        if not isinstance(response_data, dict) or "access_token" not in response_data:
            raise TokenExchangeError(
                "Token response missing required access_token",
                status_code=status,
                body=response.text,
            )

        try:
            token_response = TokenResponse(**response_data)
        except ValidationError as e:
            raise TokenExchangeError(
                f"Invalid token response format: {e}",
                status_code=status,
                body=response.text,
            ) from e

        logger.info("Token exchange successful")
        logger.debug(
            f"Token response: token_type={token_response.token_type}, "
            f"expires_in={token_response.expires_in}, "
            f"has_id_token={token_response.id_token is not None}, "
            f"scope={token_response.scope}"
        )
        return token_response

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()


def _extract_error_code(body: str) -> str | None:
    """Pull the RFC 6749 Section 5.2 ``error`` code out of an error body."""
    try:
        data = json.loads(body)
    except ValueError:
        return "invalid_grant" if "invalid_grant" in body else None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return None
