"""User-agent host capabilities and navigation strategies.

The login flow needs a handful of things from whatever is driving the user
agent: the address it is currently on, a way to send it to the identity
provider, and whether it is running inside a third-party embedding frame.
Identity providers commonly refuse to render inside frames, so an embedded
host gets a secondary top-level window instead of a frame navigation.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class UserAgentHost(Protocol):
    """Protocol for the environment driving the user agent."""

    def current_address(self) -> str | None:
        """Return the address the user agent is currently on."""
        ...

    def navigate(self, url: str) -> None:
        """Replace the current top-level page with ``url``."""
        ...

    def open_window(self, url: str) -> None:
        """Open ``url`` in a new top-level browsing context."""
        ...

    def is_embedded(self) -> bool:
        """Whether the host cannot reach its top-level browsing context."""
        ...


class NavigationStrategy(Protocol):
    """Protocol for sending the user agent to the authorization URL."""

    def __call__(self, url: str) -> None: ...


class TopLevelNavigation:
    """Full top-level navigation of the current browsing context."""

    def __init__(self, host: UserAgentHost):
        self.host = host

    def __call__(self, url: str) -> None:
        logger.debug("Performing top-level navigation to the authorization URL")
        self.host.navigate(url)


class SecondaryWindowNavigation:
    """Opens the authorization URL in a new top-level window."""

    def __init__(self, host: UserAgentHost):
        self.host = host

    def __call__(self, url: str) -> None:
        logger.debug("Opening the authorization URL in a secondary window")
        self.host.open_window(url)


def select_navigation_strategy(host: UserAgentHost) -> NavigationStrategy:
    """Pick how to reach the identity provider for this host."""
    if host.is_embedded():
        logger.info("Embedded host detected - using secondary window flow")
        return SecondaryWindowNavigation(host)
    return TopLevelNavigation(host)


class BrowserHost:
    """Host backed by the system web browser.

    The current address is supplied by ``address_source`` (typically a
    loopback callback server that received the redirect) or recorded with
    :meth:`set_current_address`.
    """

    def __init__(
        self,
        address_source: Callable[[], str | None] | None = None,
        embedded: bool = False,
    ):
        self._address_source = address_source
        self._embedded = embedded
        self._current_address: str | None = None

    def current_address(self) -> str | None:
        if self._address_source is not None:
            address = self._address_source()
            if address is not None:
                return address
        return self._current_address

    def set_current_address(self, address: str) -> None:
        self._current_address = address

    def navigate(self, url: str) -> None:
        self._open(url, new=0)

    def open_window(self, url: str) -> None:
        self._open(url, new=1)

    def is_embedded(self) -> bool:
        return self._embedded

    def _open(self, url: str, new: int) -> None:
        if not webbrowser.open(url, new=new):
            # No browser available (e.g. headless); the user can still copy it
            logger.warning(f"Could not open a browser. Visit this URL to sign in: {url}")
