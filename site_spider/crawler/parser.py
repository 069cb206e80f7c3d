"""
Web page parser for extracting navigational and inline-resource links.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

# (tag, attribute) pairs that lead to another page.
NAV_LINK_ATTRS = (
    ('a', 'href'),
    ('area', 'href'),
    ('frame', 'src'),
    ('iframe', 'src'),
    ('form', 'action'),
)

# (tag, attribute) pairs that pull a resource into the page.
INLINE_LINK_ATTRS = (
    ('img', 'src'),
    ('script', 'src'),
    ('link', 'href'),
    ('embed', 'src'),
    ('source', 'src'),
    ('video', 'src'),
    ('audio', 'src'),
    ('track', 'src'),
    ('input', 'src'),
    ('object', 'data'),
)

FOLLOWABLE_SCHEMES = ('http', 'https')


@dataclass
class PageLinks:
    """Links found on one loaded page."""
    url: str
    nav_links: List[str] = field(default_factory=list)
    inline_links: List[str] = field(default_factory=list)


class ContentParser:
    """
    Extracts links from HTML, resolved to absolute URLs.
    """

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)

    def parse(self, url: str, html_content: str) -> PageLinks:
        """
        Parse a page and collect its links.

        Args:
            url: The final URL of the page (after redirects)
            html_content: Raw HTML content

        Returns:
            PageLinks with navigational and inline links kept apart
        """
        nav_links, inline_links = self.extract_links(url, html_content)
        self.logger.debug(f"Parsed {url}: {len(nav_links)} links, "
                          f"{len(inline_links)} inline resources")
        return PageLinks(url=url, nav_links=nav_links, inline_links=inline_links)

    def extract_links(self, base_url: str, html_content: str) -> Tuple[List[str], List[str]]:
        """Return (navigational links, inline-resource links)."""
        soup = BeautifulSoup(html_content, self.features)
        base = self._document_base(soup, base_url)

        nav_links = self._collect(base, self._attribute_values(soup, NAV_LINK_ATTRS))

        inline_values = list(self._attribute_values(soup, INLINE_LINK_ATTRS))
        for img in soup.find_all('img', srcset=True):
            inline_values.extend(self._srcset_urls(img['srcset']))
        inline_links = self._collect(base, inline_values)

        return nav_links, inline_links

    def _document_base(self, soup: BeautifulSoup, page_url: str) -> str:
        """Honor <base href> when present."""
        base_tag = soup.find('base', href=True)
        if base_tag:
            href = base_tag['href'].strip()
            if href:
                try:
                    return urljoin(page_url, href)
                except ValueError:
                    self.logger.debug(f"Ignoring malformed <base href={href!r}> on {page_url}")
        return page_url

    def _attribute_values(self, soup: BeautifulSoup, pairs) -> Iterable[str]:
        for tag_name, attr in pairs:
            for tag in soup.find_all(tag_name, attrs={attr: True}):
                value = tag.get(attr)
                # Multi-valued attributes come back as lists from bs4.
                if isinstance(value, list):
                    value = ' '.join(value)
                yield value

    def _srcset_urls(self, srcset: str) -> List[str]:
        """Pull the URLs out of ``srcset="a.png 1x, b.png 2x"``."""
        urls = []
        for candidate in srcset.split(','):
            parts = candidate.strip().split()
            if parts:
                urls.append(parts[0])
        return urls

    def _collect(self, base_url: str, values: Iterable[str]) -> List[str]:
        """Resolve, filter and de-duplicate while keeping document order."""
        seen = set()
        links = []
        for value in values:
            absolute_url = self._resolve(base_url, value)
            if absolute_url and absolute_url not in seen:
                seen.add(absolute_url)
                links.append(absolute_url)
        return links

    def _resolve(self, base_url: str, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        value = value.strip()
        if not value:
            return None

        try:
            absolute_url = urljoin(base_url, value)
            parsed = urlparse(absolute_url)
        except ValueError:
            self.logger.debug(f"Ignoring malformed link {value!r} on {base_url}")
            return None

        if parsed.scheme not in FOLLOWABLE_SCHEMES or not parsed.netloc:
            return None
        return absolute_url
