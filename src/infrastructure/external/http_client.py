"""
HTTP client utilities for external API calls.
"""

import time
from typing import Any, Dict, Optional

import httpx

from src.config.logging import get_logger

logger = get_logger(__name__)


class HTTPClient:
    """HTTP client for external API calls."""

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport = None):
        self.timeout = timeout
        self.transport = transport
        self.client = None

    async def __aenter__(self):
        """Async context manager entry."""
        self.client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.client:
            await self.client.aclose()

    async def get(
        self, url: str, headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """Make GET request."""
        return await self._request("GET", url, headers=headers)

    async def post(
        self,
        url: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make POST request with a JSON body."""
        return await self._request("POST", url, json=data, headers=headers)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        start_time = time.time()

        try:
            response = await self.client.request(method, url, **kwargs)

            logger.debug(
                "HTTP request completed",
                method=method,
                url=url,
                status_code=response.status_code,
                response_time_ms=(time.time() - start_time) * 1000,
            )

            return response

        except Exception as e:
            logger.error(
                "HTTP request failed",
                method=method,
                url=url,
                error=str(e),
                response_time_ms=(time.time() - start_time) * 1000,
            )
            raise
