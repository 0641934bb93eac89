import httpx
import logging
from typing import Any

from app import config

logger = logging.getLogger(__name__)

class HttpAdapter:
    """Thin wrapper over httpx for one-off GET requests returning JSON."""

    def __init__(self, timeout: float = None):
        if timeout is None:
            timeout = config.HTTP_TIMEOUT
        self.client = httpx.AsyncClient(timeout=timeout)

    async def get(self, url: str) -> Any:
        """Performs a GET and returns the parsed JSON body. Failures are logged and re-raised."""
        try:
            response = await self.client.get(url)
            response.raise_for_status()  # Raises for 4xx/5xx status codes
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"GET {url} failed with status {e.response.status_code}")
            raise
        except httpx.RequestError as e:
            # Network failures/timeouts
            logger.error(f"GET {url} network error: {str(e)}")
            raise

    async def close(self):
        """Close the underlying HTTP client (call on app shutdown)."""
        await self.client.aclose()
