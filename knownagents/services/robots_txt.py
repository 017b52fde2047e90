"""
Known Agents Middleware - Robots.txt Generation Service
=======================================================

What:  Requests a generated robots.txt from the Known Agents API.
How:   POSTs the robots policy as JSON with bearer authorization and returns
       the response body as text.
Who:   Called by `KnownAgents.provision()`.
When:  Exactly once per module activation. The result is never refreshed.

Failure policy:
    Any failure (transport error, timeout, non-2xx status, body that is not
    UTF-8) raises RobotsTxtFetchError, which aborts provisioning. There is no
    retry: a single failed attempt is final.
"""

import logging
from typing import Optional

import httpx

from knownagents.config import settings
from knownagents.exceptions import RobotsTxtFetchError
from knownagents.schemas.knownagents import RobotsPolicy

logger = logging.getLogger(__name__)


def auth_headers(access_token: str) -> dict:
    """Headers shared by every Known Agents API request."""
    return {
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json",
    }


class RobotsTxtFetcher:
    """
    Client for the robots.txt generation endpoint.

    Args:
        endpoint:  Generation endpoint URL (defaults to settings)
        timeout:   Request timeout in seconds (defaults to settings)
        transport: Optional httpx transport, used by tests to capture requests
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.robots_txt_endpoint
        self.timeout = timeout if timeout is not None else settings.robots_txt_timeout
        self._transport = transport

    async def fetch(self, policy: RobotsPolicy, access_token: str) -> str:
        """
        Fetch the robots.txt generated for `policy`.

        Why a short-lived client:
            The fetch happens once per process, during provisioning. Keeping a
            client open afterwards would hold a connection pool nothing uses.

        Returns:
            The response body, decoded as UTF-8 and otherwise unchanged.

        Raises:
            RobotsTxtFetchError: the request failed or the body is unusable.
        """
        logger.info("Fetching generated robots.txt")

        payload = policy.model_dump()
        logger.debug("Robots.txt query payload constructed: %s", payload)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers=auth_headers(access_token),
                )
        except httpx.HTTPError as e:
            logger.warning("Error sending robots.txt query: %s", str(e))
            raise RobotsTxtFetchError(
                message=f"Error sending robots.txt query: {e}",
                context={"endpoint": self.endpoint, "error_type": type(e).__name__},
            ) from e

        logger.debug("Robots.txt query sent, status=%d", response.status_code)

        if not response.is_success:
            logger.warning(
                "Robots.txt query rejected with status %d", response.status_code
            )
            raise RobotsTxtFetchError(
                message=f"Robots.txt query rejected with status {response.status_code}",
                status_code=response.status_code,
                context={"endpoint": self.endpoint},
            )

        try:
            text = response.content.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Error reading response body: %s", str(e))
            raise RobotsTxtFetchError(
                message="Robots.txt response body is not valid UTF-8",
                status_code=response.status_code,
            ) from e

        logger.info("Generated robots.txt fetched (%d bytes)", len(response.content))
        return text
