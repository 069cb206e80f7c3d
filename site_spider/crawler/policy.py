"""
Crawl policy: the per-session restriction pattern and link admission rules.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidRestrictionPattern

# text/plain is here because some servers send HTML with the wrong type.
SPIDER_MIME = ('text/html', 'text/plain', 'text/xml')


@dataclass
class ProbeResult:
    """Outcome of probing one URL, as recorded to the result sink."""
    url: str
    status_code: Optional[int]
    mime_type: str
    referrer: str

    @property
    def mime_essence(self) -> str:
        """MIME type without parameters, e.g. ``text/html; charset=utf-8`` -> ``text/html``."""
        return self.mime_type.split(';', 1)[0]

    @property
    def status_class(self) -> str:
        """``x2`` for 2xx, ``x4`` for 4xx, ``x0`` when the URL could not be loaded."""
        if not self.status_code:
            return 'x0'
        return f"x{self.status_code // 100}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'url': self.url,
            'status_code': self.status_code,
            'mime_type': self.mime_essence,
            'referrer': self.referrer
        }


def mime_allowed(mime_type: str) -> bool:
    """Check whether a MIME type is worth loading for link discovery."""
    essence = mime_type.split(';', 1)[0]
    return any(allowed in essence for allowed in SPIDER_MIME)


def is_redirect(status_code: Optional[int]) -> bool:
    return status_code is not None and 300 <= status_code < 400


def is_success(status_code: Optional[int]) -> bool:
    return status_code is not None and status_code < 300


@dataclass(frozen=True)
class CrawlPolicy:
    """
    Immutable crawl configuration for one session.

    Only the compiled pattern is consulted while crawling;
    ``restriction_text`` is kept for display.
    """
    restriction: re.Pattern
    allow_plus_one: bool = False
    allow_arguments: bool = False
    check_inline: bool = False
    restriction_text: str = ''

    @classmethod
    def build(cls, restriction: str, allow_plus_one: bool = False,
              allow_arguments: bool = False, check_inline: bool = False) -> 'CrawlPolicy':
        """
        Compile ``restriction`` and build a policy.

        Raises:
            InvalidRestrictionPattern: if the pattern does not compile
        """
        try:
            compiled = re.compile(restriction)
        except (re.error, TypeError) as e:
            raise InvalidRestrictionPattern(str(restriction), str(e)) from e

        return cls(
            restriction=compiled,
            allow_plus_one=allow_plus_one,
            allow_arguments=allow_arguments,
            check_inline=check_inline,
            restriction_text=restriction
        )

    def matches(self, url: str) -> bool:
        return self.restriction.search(url) is not None

    def eligible(self, result: ProbeResult) -> bool:
        """
        Decide whether a probed URL should be loaded for link discovery.

        Redirects are always followed; successful responses only when
        their MIME type is one we can scan.
        """
        if not self.matches(result.url):
            return False
        if is_redirect(result.status_code):
            return True
        return is_success(result.status_code) and mime_allowed(result.mime_type)

    def admit(self, link: str, current_url: str) -> bool:
        """Decide whether a discovered link may enter the frontier."""
        if not link:
            return False
        if not self.allow_arguments and '?' in link:
            return False
        if self.matches(link):
            return True
        return self.allow_plus_one and self.matches(current_url)
