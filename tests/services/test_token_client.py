"""Tests for the token endpoint client.

High-impact tests covering the token exchange:
- Successful authorization code to token exchange
- Error response mapping (invalid_grant step-up, other rejections)
- Form encoding and request validation
- Transport failures
"""

import httpx
import pytest

from authflow.models.errors import (
    NetworkUnreachableError,
    StepUpIncompleteError,
    TokenExchangeError,
)
from authflow.models.tokens import TokenRequest


@pytest.fixture
def token_request() -> TokenRequest:
    return TokenRequest(
        token_endpoint="https://idp.example.com/v1/token",
        code="auth-code-123",
        redirect_uri="https://myapp.com/callback",
        client_id="client-456",
        code_verifier="dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
    )


class TestTokenExchange:
    """Test authorization code to access token exchange."""

    async def test_successful_token_exchange_with_all_fields(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            200,
            {
                "access_token": "access-token-xyz",
                "token_type": "Bearer",
                "expires_in": 3600,
                "id_token": "id-token-abc",
                "scope": "openid profile email",
            },
        )

        # Act
        token_response = await token_client.exchange_code_for_token(token_request)

        # Assert
        assert token_response.access_token == "access-token-xyz"
        assert token_response.token_type == "Bearer"
        assert token_response.expires_in == 3600
        assert token_response.id_token == "id-token-abc"
        assert token_response.scope == "openid profile email"

        result = token_response.to_login_result()
        assert result.access_token == "access-token-xyz"
        assert result.id_token == "id-token-abc"

    async def test_minimal_success_response(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            200, {"access_token": "access-token-xyz"}
        )

        # Act
        token_response = await token_client.exchange_code_for_token(token_request)

        # Assert
        assert token_response.access_token == "access-token-xyz"
        assert token_response.token_type == "Bearer"
        assert token_response.expires_in is None
        assert token_response.id_token is None

    async def test_form_encoding(self, token_client, token_request, response_factory):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            200, {"access_token": "token-xyz"}
        )

        # Act
        await token_client.exchange_code_for_token(token_request)

        # Assert
        call_args = token_client._http_client.post.call_args
        assert call_args[0][0] == "https://idp.example.com/v1/token"

        headers = call_args[1]["headers"]
        assert headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert headers["Accept"] == "application/json"

        # Should use 'data' parameter (form), not 'json' parameter
        assert "json" not in call_args[1]
        form_data = call_args[1]["data"]
        assert form_data["grant_type"] == "authorization_code"
        assert form_data["code"] == "auth-code-123"
        assert form_data["redirect_uri"] == "https://myapp.com/callback"
        assert form_data["client_id"] == "client-456"
        assert form_data["code_verifier"] == token_request.code_verifier
        assert "client_secret" not in form_data


class TestTokenExchangeErrors:
    """Test error handling in token exchange."""

    async def test_invalid_grant_is_step_up_incomplete(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            400,
            {
                "error": "invalid_grant",
                "error_description": "Authorization code has expired",
            },
        )

        # Act & Assert
        with pytest.raises(StepUpIncompleteError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert exc_info.value.status_code == 400
        assert exc_info.value.error == "invalid_grant"
        assert "Authorization code has expired" in exc_info.value.body

    async def test_invalid_grant_in_non_json_body(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            400, text="error=invalid_grant"
        )

        # Act & Assert
        with pytest.raises(StepUpIncompleteError):
            await token_client.exchange_code_for_token(token_request)

    async def test_other_400_is_plain_token_exchange_error(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            400, {"error": "invalid_request"}
        )

        # Act & Assert
        with pytest.raises(TokenExchangeError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert not isinstance(exc_info.value, StepUpIncompleteError)
        assert exc_info.value.error == "invalid_request"

    async def test_invalid_client_error(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            401,
            {
                "error": "invalid_client",
                "error_description": "Client authentication failed",
            },
        )

        # Act & Assert
        with pytest.raises(TokenExchangeError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert exc_info.value.status_code == 401
        assert "Client authentication failed" in str(exc_info.value)

    async def test_non_json_error_response(
        self, token_client, token_request, response_factory
    ):
        # Arrange - HTML instead of JSON, common for 5xx errors
        token_client._http_client.post.return_value = response_factory(
            502, text="<html>Bad Gateway</html>"
        )

        # Act & Assert
        with pytest.raises(TokenExchangeError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert exc_info.value.status_code == 502
        assert exc_info.value.body == "<html>Bad Gateway</html>"
        assert exc_info.value.error is None

    async def test_missing_access_token_in_success_response(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            200, {"token_type": "Bearer"}
        )

        # Act & Assert
        with pytest.raises(TokenExchangeError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert "missing required access_token" in str(exc_info.value)

    async def test_empty_access_token_in_success_response(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            200, {"access_token": "", "token_type": "Bearer", "expires_in": 3600}
        )

        # Act & Assert
        with pytest.raises(TokenExchangeError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert "Invalid token response format" in str(exc_info.value)
        assert exc_info.value.status_code == 200

    async def test_non_json_success_response(
        self, token_client, token_request, response_factory
    ):
        # Arrange
        token_client._http_client.post.return_value = response_factory(
            200, text="not json"
        )

        # Act & Assert
        with pytest.raises(TokenExchangeError):
            await token_client.exchange_code_for_token(token_request)


class TestTransportErrors:
    """Test network-level failures."""

    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("Connection refused"),
            httpx.ConnectTimeout("Timed out"),
            httpx.RemoteProtocolError("Server disconnected"),
        ],
    )
    async def test_transport_errors_raise_network_unreachable(
        self, token_client, token_request, error
    ):
        # Arrange
        token_client._http_client.post.side_effect = error

        # Act & Assert
        with pytest.raises(NetworkUnreachableError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert exc_info.value.url == "https://idp.example.com/v1/token"
        assert exc_info.value.__cause__ is error

    async def test_network_unreachable_is_not_a_token_rejection(
        self, token_client, token_request
    ):
        # Arrange
        token_client._http_client.post.side_effect = httpx.ConnectError("refused")

        # Act & Assert
        with pytest.raises(NetworkUnreachableError) as exc_info:
            await token_client.exchange_code_for_token(token_request)

        assert not isinstance(exc_info.value, TokenExchangeError)

    async def test_close_closes_http_client(self, token_client):
        # Act
        await token_client.close()

        # Assert
        token_client._http_client.aclose.assert_awaited_once()
