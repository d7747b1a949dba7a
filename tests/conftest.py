import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from authflow.models.config import OAuthClientConfig
from authflow.services.storage import MemoryEphemeralStore
from authflow.services.tokens import OAuth2TokenClient


class RecordingHost:
    """User-agent host that records navigation instead of opening a browser."""

    def __init__(self, embedded: bool = False):
        self.embedded = embedded
        self.address: str | None = None
        self.navigations: list[str] = []
        self.windows: list[str] = []

    def current_address(self) -> str | None:
        return self.address

    def navigate(self, url: str) -> None:
        self.navigations.append(url)

    def open_window(self, url: str) -> None:
        self.windows.append(url)

    def is_embedded(self) -> bool:
        return self.embedded


@pytest.fixture
def config() -> OAuthClientConfig:
    return OAuthClientConfig(
        issuer="https://idp.example.com/oauth2/default",
        client_id="client-123",
        redirect_uri="https://app.example.com/callback",
        api_base_url="https://api.example.com/v1",
    )


@pytest.fixture
def storage() -> MemoryEphemeralStore:
    return MemoryEphemeralStore()


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def embedded_host() -> RecordingHost:
    return RecordingHost(embedded=True)


@pytest.fixture
def token_client() -> OAuth2TokenClient:
    client = OAuth2TokenClient()
    client._http_client = AsyncMock()
    return client


def make_response(status_code: int, json_body=None, text: str | None = None):
    """Build a mock httpx response."""
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    if json_body is not None:
        response.json.return_value = json_body
        response.text = text if text is not None else json.dumps(json_body)
        response.content = response.text.encode()
    else:
        response.json.side_effect = ValueError("Not valid JSON")
        response.text = text or ""
        response.content = response.text.encode()
    return response


@pytest.fixture
def response_factory():
    return make_response
