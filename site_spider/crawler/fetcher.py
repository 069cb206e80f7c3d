"""
Web fetcher implementation: HEAD probes and full page loads over aiohttp.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from .errors import FetchError, LoadTimeout, ProbeTimeout
from .parser import ContentParser, PageLinks

NO_CONTENT_TYPE = '[none]'


@dataclass
class ProbeOutcome:
    """Headers-only view of a URL."""
    status_code: int
    mime_type: str
    fetch_time: float = 0.0


class FetchCapability(Protocol):
    """What the scheduler needs from a fetcher."""

    async def probe(self, url: str, timeout: float) -> ProbeOutcome:
        ...

    async def load(self, url: str, timeout: float) -> PageLinks:
        ...


class WebFetcher:
    """
    Probes URLs with HEAD requests and loads pages for link extraction.

    Every call opens its own request and releases it before returning,
    so at most one response is ever held open per call.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30,
                 parser: Optional[ContentParser] = None,
                 max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.parser = parser or ContentParser()
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        # Statistics
        self.stats = {
            'probes': 0,
            'probe_failures': 0,
            'loads': 0,
            'load_failures': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=2,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def probe(self, url: str, timeout: float) -> ProbeOutcome:
        """
        Fetch the headers of a URL without its body.

        Redirects are not followed, so a 3xx status is reported as such.

        Raises:
            ProbeTimeout: the server did not answer within ``timeout``
            FetchError: the request failed before a response arrived
        """
        await self.start()
        start_time = time.time()
        self.stats['probes'] += 1

        try:
            async with self.session.head(url, allow_redirects=False,
                                         timeout=ClientTimeout(total=timeout)) as response:
                mime_type = response.headers.get('Content-Type') or NO_CONTENT_TYPE
                outcome = ProbeOutcome(
                    status_code=response.status,
                    mime_type=mime_type,
                    fetch_time=time.time() - start_time
                )
                self.logger.debug(f"Probed {url}: {response.status} {mime_type}")
                return outcome

        except asyncio.TimeoutError as e:
            self.stats['probe_failures'] += 1
            self.logger.warning(f"Timeout probing {url}")
            raise ProbeTimeout(url, timeout) from e

        except (ClientError, ValueError) as e:
            self.stats['probe_failures'] += 1
            self.logger.warning(f"Client error probing {url}: {e}")
            raise FetchError(url, f"Client error: {e}") from e

    async def load(self, url: str, timeout: float) -> PageLinks:
        """
        Load a page, following redirects, and extract its links.

        Non-text responses yield no links.

        Raises:
            LoadTimeout: the page did not load within ``timeout``
            FetchError: the request failed or the page could not be parsed
        """
        await self.start()
        self.stats['loads'] += 1

        try:
            async with self.session.get(url, timeout=ClientTimeout(total=timeout)) as response:
                final_url = str(response.url)
                content_type = response.headers.get('Content-Type', '').lower()

                if not self._is_text_content(content_type):
                    self.logger.debug(f"Not scanning non-text content: {final_url} ({content_type})")
                    return PageLinks(url=final_url)

                content = await self._read_content_safely(response)

        except asyncio.TimeoutError as e:
            self.stats['load_failures'] += 1
            self.logger.warning(f"Timeout loading {url}")
            raise LoadTimeout(url, timeout) from e

        except (ClientError, ValueError) as e:
            self.stats['load_failures'] += 1
            self.logger.warning(f"Client error loading {url}: {e}")
            raise FetchError(url, f"Client error: {e}") from e

        if content is None:
            return PageLinks(url=final_url)

        self.stats['total_bytes_downloaded'] += len(content)
        try:
            return self.parser.parse(final_url, content)
        except Exception as e:
            self.stats['load_failures'] += 1
            self.logger.warning(f"Error parsing {final_url}: {e}")
            raise FetchError(url, f"Parse error: {e}") from e

    def _is_text_content(self, content_type: str) -> bool:
        """Check if content type is something the parser can scan."""
        text_types = [
            'text/html',
            'text/plain',
            'text/xml',
            'application/xml',
            'application/xhtml+xml'
        ]

        return any(text_type in content_type for text_type in text_types)

    async def _read_content_safely(self, response) -> Optional[str]:
        """
        Read response content with a size limit.

        Returns:
            Content string or None if too large
        """
        content_length = response.headers.get('Content-Length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
            return None

        # Read content in chunks to respect size limit
        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > self.max_content_size:
                self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                return None

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            return content_bytes.decode('utf-8', errors='ignore')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
