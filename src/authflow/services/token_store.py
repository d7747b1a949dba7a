"""In-memory access token store.

The single source of truth for "is the user authenticated" and "which bearer
token goes on outgoing calls". Tokens are never written to durable storage.
Expiry is lazy: an expired token is only noticed, and cleared, when something
reads it.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable

from authflow.models.tokens import AccessToken, TokenInfo

logger = logging.getLogger(__name__)


class TokenStore:
    """Holds at most one access token with an optional expiry.

    Create one per application session and pass it to whatever needs it.
    A single change subscriber is called, with no arguments, after every
    ``set`` and ``clear`` (including a clear caused by lazy expiry).
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize an empty store.

        Args:
            clock: Source of the current Unix time
        """
        self._clock = clock
        self._token: AccessToken | None = None
        self._subscriber: Callable[[], None] | None = None
        self._lock = threading.RLock()

    def set(self, token: str, expires_in_seconds: float | None = None) -> None:
        """Replace the held token.

        Args:
            token: Bearer token value
            expires_in_seconds: Lifetime from now; None for no known expiry
        """
        expires_at = None
        if expires_in_seconds is not None:
            expires_at = self._clock() + expires_in_seconds

        with self._lock:
            self._token = AccessToken(value=token, expires_at=expires_at)

        logger.debug(
            f"Access token stored in memory (length={len(token)}, "
            f"expires_at={_format_expiry(expires_at)})"
        )
        self._notify()

    def get(self) -> str | None:
        """Return the current token, clearing it first if it has expired."""
        with self._lock:
            token = self._token
            if token is None:
                return None
            if not token.is_expired(self._clock()):
                return token.value
            self._token = None

        logger.info("Access token expired, cleared from memory")
        self._notify()
        return None

    def is_valid(self) -> bool:
        return self.get() is not None

    def clear(self) -> None:
        """Discard the token and its expiry unconditionally."""
        with self._lock:
            had_token = self._token is not None
            self._token = None

        logger.debug(f"Access token cleared from memory (had_token={had_token})")
        self._notify()

    def on_change(self, subscriber: Callable[[], None] | None) -> None:
        """Register the change subscriber; the last registration wins."""
        with self._lock:
            self._subscriber = subscriber
        logger.debug("Token change subscriber registered")

    def token_info(self) -> TokenInfo:
        """Snapshot for diagnostics; does not apply lazy expiry."""
        with self._lock:
            token = self._token

        if token is None:
            return TokenInfo(has_token=False)
        expires_at = None
        if token.expires_at is not None:
            expires_at = datetime.fromtimestamp(token.expires_at, tz=timezone.utc)
        return TokenInfo(has_token=True, expires_at=expires_at)

    def _notify(self) -> None:
        # Called outside the lock so the subscriber can read the store
        subscriber = self._subscriber
        if subscriber is not None:
            subscriber()


def _format_expiry(expires_at: float | None) -> str:
    if expires_at is None:
        return "none"
    return datetime.fromtimestamp(expires_at, tz=timezone.utc).isoformat()
