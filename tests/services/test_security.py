import pytest

from authflow.models.errors import StateMismatchError
from authflow.services.security import validate_redirect_uri, validate_state


class TestValidateState:
    def test_matching_state(self):
        validate_state("state-123", "state-123")

    @pytest.mark.parametrize(
        "expected, actual",
        [
            ("state-123", "state-456"),
            ("state-123", "state-12"),
            ("state-123", "state-1234"),
            ("state-123", "STATE-123"),
            ("state-123", ""),
        ],
    )
    def test_mismatch(self, expected, actual):
        with pytest.raises(StateMismatchError) as exc_info:
            validate_state(expected, actual)

        assert "CSRF" in str(exc_info.value)

    def test_missing_stored_state(self):
        with pytest.raises(StateMismatchError):
            validate_state(None, "state-123")

    def test_missing_received_state(self):
        with pytest.raises(StateMismatchError):
            validate_state("state-123", None)


class TestValidateRedirectUri:
    @pytest.mark.parametrize(
        "uri",
        [
            "https://app.example.com/callback",
            "http://localhost:8080/callback",
            "http://127.0.0.1:8765/callback",
        ],
    )
    def test_accepted(self, uri):
        assert validate_redirect_uri(uri)

    @pytest.mark.parametrize(
        "uri",
        [
            "http://app.example.com/callback",
            "ftp://localhost/callback",
            "not a url",
            "https://",
        ],
    )
    def test_rejected(self, uri):
        assert not validate_redirect_uri(uri)
