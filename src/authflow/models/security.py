"""Security-related models for the login flow.

Contains the per-attempt PKCE session secrets.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PKCESession:
    """Secrets generated for one login attempt (RFC 7636).

    ``state`` and ``code_verifier`` are persisted to single-use ephemeral
    storage; ``code_challenge`` is only ever sent.
    """

    state: str = field()
    code_verifier: str = field(repr=False)
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if len(self.state) < 22:
            raise ValueError("state must carry at least 128 bits of entropy")
        if not (43 <= len(self.code_verifier) <= 128):
            raise ValueError("code_verifier must be 43-128 characters")
        if len(self.code_challenge) != 43:
            raise ValueError("code_challenge must be 43 characters")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")
