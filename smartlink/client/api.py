"""
HTTP client for the extraction endpoint.
"""
import logging
from typing import Optional

import httpx

from smartlink.services.extracted_content import ExtractedContent

logger = logging.getLogger(__name__)

EXTRACT_PATH = "/api/library/extract-metadata"
DEFAULT_TIMEOUT = 45.0  # server-side LLM timeout is 30s


class ExtractionAPI:
    """Thin async wrapper around POST /api/library/extract-metadata."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout
        )

    async def extract_metadata(self, url: str, force_refresh: bool = False) -> ExtractedContent:
        """
        Raises:
            httpx.HTTPStatusError: non-2xx response
            httpx.TransportError: network failure or timeout
        """
        response = await self.client.post(
            EXTRACT_PATH,
            json={"url": url, "forceRefresh": force_refresh}
        )
        response.raise_for_status()
        payload = response.json()
        logger.debug(f"Extraction response for {url}: success={payload.get('success')}")
        return ExtractedContent.from_dict(payload["data"])

    async def close(self) -> None:
        await self.client.aclose()
