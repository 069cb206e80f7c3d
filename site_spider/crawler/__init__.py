"""
Spider core components.
"""

from .errors import (
    SpiderError, InvalidRestrictionPattern, SinkUnavailable,
    FetchError, ProbeTimeout, LoadTimeout
)
from .policy import CrawlPolicy, ProbeResult
from .url_frontier import URLFrontier
from .fetcher import WebFetcher, ProbeOutcome
from .parser import ContentParser, PageLinks

__all__ = [
    'SpiderError', 'InvalidRestrictionPattern', 'SinkUnavailable',
    'FetchError', 'ProbeTimeout', 'LoadTimeout',
    'CrawlPolicy', 'ProbeResult', 'URLFrontier',
    'WebFetcher', 'ProbeOutcome',
    'ContentParser', 'PageLinks'
]
