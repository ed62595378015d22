import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from packettool.logger import packet_logger
from packettool.packet_config import DEFAULT_FETCH_TIMEOUT


class FetchError(Exception):
    def __init__(self, url, reason):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch PDF: {reason}")


class PdfFetcher:
    """Downloads raw document bytes. Any non-2xx response is a FetchError."""

    def __init__(self, timeout: float = DEFAULT_FETCH_TIMEOUT, client: httpx.AsyncClient | None = None):
        self.timeout = timeout
        self._client = client

    async def fetch_bytes(self, url: str) -> bytes:
        if url.startswith("file:"):
            return await self._read_local(url)

        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            packet_logger.exception(f"[FB]..Request for {url} failed")
            raise FetchError(url, str(e)) from e

        if not response.is_success:
            raise FetchError(url, response.reason_phrase or str(response.status_code))
        packet_logger.debug(f"[FB]..Fetched {len(response.content)} bytes")
        return response.content

    async def _read_local(self, url: str) -> bytes:
        path = Path(unquote(urlparse(url).path))
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise FetchError(url, e.strerror or str(e)) from e
