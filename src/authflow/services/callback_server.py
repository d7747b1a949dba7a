"""Loopback HTTP server that receives the identity provider's redirect.

Serves the path of the registered redirect address on its host and port,
captures the full callback URL and hands it to the login flow as the host's
current address.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlparse, urlunparse

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from authflow.models.errors import ConfigurationError
from authflow.services.security import LOOPBACK_HOSTS

logger = logging.getLogger(__name__)


class LoopbackCallbackServer:
    """Captures one redirect on a loopback redirect address.

    The callback URL is rebuilt from the configured redirect address's scheme,
    host and path plus the received query string. The provider echoes any
    query the registered address carries, so it is taken from the request
    rather than appended twice.
    """

    def __init__(self, redirect_uri: str):
        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or parsed.hostname not in LOOPBACK_HOSTS:
            raise ConfigurationError(
                f"Loopback callback server needs an http loopback redirect URI: "
                f"{redirect_uri}"
            )

        self.redirect_uri = redirect_uri
        self.host = parsed.hostname
        self.port = parsed.port or 80
        self.path = parsed.path or "/"
        self._base_parts = (parsed.scheme, parsed.netloc, parsed.path)

        self._callback_url: str | None = None
        self._received = asyncio.Event()

        self._app = Starlette(
            routes=[Route(self.path, self._handle_callback, methods=["GET"])]
        )
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task | None = None

    @property
    def app(self) -> Starlette:
        return self._app

    def current_address(self) -> str | None:
        """The captured callback URL, or None before the redirect arrives."""
        return self._callback_url

    async def start(self) -> None:
        """Start the HTTP server."""
        config = uvicorn.Config(
            app=self._app, host=self.host, port=self.port, log_level="warning"
        )
        self._server = uvicorn.Server(config)

        # Start server in background task
        self._serve_task = asyncio.create_task(self._server.serve())
        logger.info(f"Callback server listening on {self.redirect_uri}")

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._server:
            self._server.should_exit = True
        if self._serve_task:
            await self._serve_task
            self._serve_task = None

    async def wait_for_callback(self) -> str:
        """Wait until the redirect arrives and return the callback URL.

        No timeout is applied; wrap in ``asyncio.wait_for`` to bound it.
        """
        await self._received.wait()
        return self._callback_url or self.redirect_uri

    async def _handle_callback(self, request: Request) -> Response:
        scheme, netloc, path = self._base_parts
        self._callback_url = urlunparse(
            (scheme, netloc, path, "", request.url.query, "")
        )
        self._received.set()

        logger.debug("Received authorization callback")

        if "error" in request.query_params:
            return PlainTextResponse(
                "Sign-in was not completed. You can close this window.",
                status_code=400,
            )
        return PlainTextResponse("Sign-in received. You can close this window.")
