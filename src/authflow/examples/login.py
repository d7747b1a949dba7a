"""
Sign in from a terminal with the authorization code + PKCE flow.

Opens the system browser at the identity provider, catches the redirect on a
loopback callback server, stores the access token in memory and calls the
API's /me endpoint with it.

You'll need AUTHFLOW_ISSUER, AUTHFLOW_CLIENT_ID and AUTHFLOW_REDIRECT_URI
(an http://localhost:<port>/callback address registered with the provider).
Set AUTHFLOW_API_BASE_URL to also call the API.
"""

import asyncio
import logging
import os

from authflow.logging import configure_logging
from authflow.models.config import OAuthClientConfig
from authflow.models.errors import AuthFlowError, MfaRequiredError, StepUpIncompleteError
from authflow.services.api import AuthenticatedApiClient
from authflow.services.callback_server import LoopbackCallbackServer
from authflow.services.flow import AuthFlowEngine
from authflow.services.host import BrowserHost
from authflow.services.storage import MemoryEphemeralStore
from authflow.services.token_store import TokenStore

logger = logging.getLogger(__name__)


async def main() -> None:
    configure_logging(os.getenv("AUTHFLOW_LOG_LEVEL", "INFO"))
    config = OAuthClientConfig.from_env()

    token_store = TokenStore()
    token_store.on_change(
        lambda: logger.info(f"Authenticated: {token_store.token_info().has_token}")
    )

    callback_server = LoopbackCallbackServer(config.redirect_uri)
    host = BrowserHost(address_source=callback_server.current_address)
    engine = AuthFlowEngine(config, MemoryEphemeralStore(), host)

    await callback_server.start()
    try:
        engine.start_login()
        await asyncio.wait_for(callback_server.wait_for_callback(), timeout=300)

        try:
            result = await asyncio.wait_for(engine.complete_login(), timeout=30)
        except MfaRequiredError as e:
            logger.error(f"Complete the required second factor and retry: {e}")
            return
        except StepUpIncompleteError as e:
            logger.error(f"Sign-in step-up did not finish, please retry: {e}")
            return

        token_store.set(result.access_token, result.expires_in)
    finally:
        await callback_server.stop()
        await engine.close()

    if not config.api_base_url:
        return

    async with AuthenticatedApiClient(config.api_base_url, token_store) as api:
        check = await api.check_connection()
        if check.success:
            logger.info(f"/me: {check.data}")
        else:
            logger.error(f"API call failed: {check.error}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except AuthFlowError as e:
        logging.error(f"Login failed: {e}")
