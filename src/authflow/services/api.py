"""Authenticated client for the downstream API.

Attaches the current bearer token from a TokenStore to every request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from authflow.models.errors import (
    ApiError,
    AuthFlowError,
    NetworkUnreachableError,
    NotAuthenticatedError,
)
from authflow.services.token_store import TokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionCheck:
    """Outcome of a connectivity check against the API."""

    success: bool
    data: Any = None
    error: str | None = None


class AuthenticatedApiClient:
    """JSON API client using the token held in a TokenStore."""

    def __init__(
        self, base_url: str, token_store: TokenStore, timeout: float = 30.0
    ):
        self.base_url = base_url.rstrip("/")
        self._token_store = token_store
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> AuthenticatedApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        endpoint: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Send an authenticated request and return the decoded JSON body.

        Raises:
            NotAuthenticatedError: If no valid token is held
            ApiError: If the API answers with a non-2xx status
            NetworkUnreachableError: If the API cannot be reached
        """
        token = self._token_store.get()
        if token is None:
            raise NotAuthenticatedError(
                "No access token available. Please log in first."
            )

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        request_headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if headers:
            request_headers.update(headers)

        logger.debug(f"API request: {method} {url}")

        try:
            response = await self._http_client.request(
                method, url, headers=request_headers, **kwargs
            )
        except httpx.TransportError as e:
            raise NetworkUnreachableError(
                f"Could not reach API at {url}: {e}", url=url
            ) from e

        if not response.is_success:
            logger.warning(f"API call to {url} failed with {response.status_code}")
            raise ApiError(response.status_code, response.text)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, response.text) from e

    async def get_current_user(self) -> Any:
        """Fetch the signed-in user's profile."""
        return await self.request("GET", "/me")

    async def check_connection(self) -> ConnectionCheck:
        """Call the API with the current token without raising."""
        try:
            data = await self.get_current_user()
        except AuthFlowError as e:
            return ConnectionCheck(success=False, error=str(e))
        return ConnectionCheck(success=True, data=data)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
