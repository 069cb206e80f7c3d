"""
Test configuration and fixtures for the spider tests
"""

import asyncio
import re
from typing import Dict, List, Optional, Tuple, Union

import pytest

from site_spider.crawler.errors import SinkUnavailable
from site_spider.crawler.fetcher import ProbeOutcome
from site_spider.crawler.parser import PageLinks
from site_spider.crawler.policy import CrawlPolicy, ProbeResult
from site_spider.storage.results import ResultSink

HANG = 'hang'


class RecordingSink(ResultSink):
    """Keeps everything the scheduler pushes at it."""

    def __init__(self, fail_after: Optional[int] = None):
        self.results: List[ProbeResult] = []
        self.statuses: List[Tuple[str, int]] = []
        self.fail_after = fail_after

    def on_status(self, message: str, queue_depth: int):
        self.statuses.append((message, queue_depth))

    def on_page_result(self, result: ProbeResult):
        if self.fail_after is not None and len(self.results) >= self.fail_after:
            raise SinkUnavailable("results view was closed")
        self.results.append(result)

    @property
    def urls(self) -> List[str]:
        return [r.url for r in self.results]

    def result_for(self, url: str) -> ProbeResult:
        return next(r for r in self.results if r.url == url)


class ScriptedFetcher:
    """
    Fetch capability driven by dictionaries.

    Values may be a ProbeOutcome / PageLinks, an exception to raise,
    or HANG to never complete. Unknown URLs probe as 404.
    """

    def __init__(self, probes: Optional[Dict[str, Union[ProbeOutcome, Exception, str]]] = None,
                 pages: Optional[Dict[str, Union[PageLinks, Exception, str]]] = None):
        self.probes = probes or {}
        self.pages = pages or {}
        self.probed: List[str] = []
        self.loaded: List[str] = []
        self.cancelled: List[str] = []

    async def probe(self, url: str, timeout: float) -> ProbeOutcome:
        self.probed.append(url)
        outcome = self.probes.get(url, ProbeOutcome(404, 'text/html'))
        return await self._resolve(url, outcome)

    async def load(self, url: str, timeout: float) -> PageLinks:
        self.loaded.append(url)
        page = self.pages.get(url, PageLinks(url=url))
        return await self._resolve(url, page)

    async def _resolve(self, url, value):
        if value == HANG:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled.append(url)
                raise
        if isinstance(value, Exception):
            raise value
        await asyncio.sleep(0)
        return value


def html_page(status: int = 200) -> ProbeOutcome:
    return ProbeOutcome(status, 'text/html; charset=utf-8')


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def site_policy():
    """Policy restricted to http://example.com/a/"""
    return CrawlPolicy.build('^' + re.escape('http://example.com/a/'))
