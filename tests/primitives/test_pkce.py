import base64
import hashlib
import secrets
from unittest.mock import patch

import pytest

from authflow.models.errors import LoginInitiationError
from authflow.primitives.pkce import PKCEManager, compute_code_challenge


class TestPKCEManager:
    def test_generate_session_crypto_requirements(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act
        session = pkce_manager.generate_session()

        # Assert RFC 7636 requirements
        assert 43 <= len(session.code_verifier) <= 128
        assert len(session.code_challenge) == 43
        assert session.code_challenge_method == "S256"
        assert "=" not in session.code_verifier
        assert "=" not in session.code_challenge

        # Verify code_challenge is base64url(sha256(code_verifier))
        expected_challenge = (
            base64.urlsafe_b64encode(
                hashlib.sha256(session.code_verifier.encode("ascii")).digest()
            )
            .decode("ascii")
            .rstrip("=")
        )
        assert session.code_challenge == expected_challenge

    def test_verifier_and_state_carry_enough_entropy(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act
        session = pkce_manager.generate_session()

        # Assert - 32 bytes -> 43 chars, 24 bytes -> 32 chars
        assert len(session.code_verifier) == 43
        assert len(session.state) == 32

    def test_generate_session_uniqueness(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act - Generate multiple sessions
        session1 = pkce_manager.generate_session()
        session2 = pkce_manager.generate_session()

        # Assert - Each generation is unique
        assert session1.state != session2.state
        assert session1.code_verifier != session2.code_verifier
        assert session1.code_challenge != session2.code_challenge

    def test_missing_random_source_raises_login_initiation_error(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act & Assert
        with patch.object(
            secrets, "token_bytes", side_effect=NotImplementedError("no urandom")
        ):
            with pytest.raises(LoginInitiationError):
                pkce_manager.generate_session()


class TestCodeChallenge:
    def test_rfc7636_known_answer(self) -> None:
        # RFC 7636 Appendix B
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

        assert compute_code_challenge(verifier) == (
            "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"
        )

    def test_challenge_is_deterministic(self) -> None:
        verifier = "a" * 43

        assert compute_code_challenge(verifier) == compute_code_challenge(verifier)
