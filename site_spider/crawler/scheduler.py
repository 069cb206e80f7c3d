"""
Spider scheduler that drives one crawl session: probe, decide, load,
extract, repeat until the frontier is empty.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .errors import (
    InvalidRestrictionPattern, LoadTimeout, ProbeTimeout, SinkUnavailable
)
from .fetcher import FetchCapability, NO_CONTENT_TYPE
from .parser import PageLinks
from .policy import CrawlPolicy, ProbeResult
from .url_frontier import URLFrontier
from .urls import normalize
from .watchdog import WatchdogSlot
from ..storage.results import ResultSink
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor

# Recorded as the MIME type of a URL whose probe was aborted.
UNKNOWN_MIME = '[???]'

DEFAULT_PROBE_TIMEOUT = 30.0
DEFAULT_LOAD_TIMEOUT = 30.0


class CrawlState(Enum):
    """Scheduler states."""
    IDLE = 'idle'
    PROBING = 'probing'
    LOADING = 'loading'
    EXTRACTING = 'extracting'
    DONE = 'done'


@dataclass
class SessionStats:
    """Statistics for one spidering session."""
    start_time: float
    urls_recorded: int = 0
    pages_loaded: int = 0
    probe_timeouts: int = 0
    load_timeouts: int = 0
    fetch_errors: int = 0
    links_queued: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time


@dataclass
class SessionState:
    """Everything that belongs to one session; discarded on stop."""
    seed_url: str
    policy: CrawlPolicy
    frontier: URLFrontier = field(default_factory=URLFrontier)
    stats: SessionStats = field(default_factory=lambda: SessionStats(start_time=time.time()))
    cancelled: bool = False


class SpiderScheduler:
    """
    Coordinates the frontier, the fetcher and the result sink.

    Only one probe or one page load is ever in flight. Each is guarded
    by its own watchdog so a hung request cannot stall the session.
    """

    def __init__(self, fetcher: FetchCapability, sink: ResultSink,
                 probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
                 load_timeout: float = DEFAULT_LOAD_TIMEOUT,
                 monitor: Optional[CrawlerMonitor] = None):
        self.fetcher = fetcher
        self.sink = sink
        self.probe_timeout = probe_timeout
        self.load_timeout = load_timeout
        self.monitor = monitor
        self.logger = get_crawler_logger(__name__)

        self.state = CrawlState.IDLE
        self.session: Optional[SessionState] = None
        self._probe_slot = WatchdogSlot('probe')
        self._load_slot = WatchdogSlot('load')
        self._driver: Optional[asyncio.Task] = None

    @property
    def frontier(self) -> Optional[URLFrontier]:
        return self.session.frontier if self.session else None

    @property
    def is_running(self) -> bool:
        return self._driver is not None and not self._driver.done()

    def start(self, seed_url: str, policy: CrawlPolicy) -> asyncio.Task:
        """
        Start a new session, terminating any previous one.
        Must be called from within a running event loop.

        Raises:
            InvalidRestrictionPattern: if the policy holds no compiled pattern
        """
        if not isinstance(policy.restriction, re.Pattern):
            raise InvalidRestrictionPattern(str(policy.restriction), "pattern is not compiled")

        self.stop()

        session = SessionState(seed_url=seed_url, policy=policy)
        session.frontier.add_seed(seed_url)
        self.session = session

        self.logger.info(f"Spidering {seed_url} restricted to {policy.restriction.pattern}")
        self._driver = asyncio.ensure_future(self._drive(session))
        return self._driver

    async def crawl(self, seed_url: str, policy: CrawlPolicy) -> SessionStats:
        """Run a whole session and return its statistics."""
        self.start(seed_url, policy)
        session = self.session
        await self.wait()
        return session.stats

    async def wait(self):
        """Wait for the current session to finish or be stopped."""
        driver = self._driver
        if driver is None:
            return
        try:
            await driver
        except asyncio.CancelledError:
            if not driver.cancelled():
                raise

    def stop(self):
        """
        Tear down the current session from any state.
        Idempotent; does nothing when already idle.
        """
        session = self.session
        if session is not None:
            session.cancelled = True
            session.frontier.clear()

        self._probe_slot.cancel()
        self._load_slot.cancel()

        driver = self._driver
        if driver is not None and not driver.done():
            current = None
            try:
                current = asyncio.current_task()
            except RuntimeError:
                pass
            if driver is not current:
                driver.cancel()

        if self.state != CrawlState.IDLE:
            self.logger.info("Spider stopped")
        self.state = CrawlState.IDLE

    async def _drive(self, session: SessionState):
        """Main loop: one URL per iteration until the frontier drains."""
        try:
            while not session.cancelled:
                self._set_status(session, 'Next page...')
                entry = session.frontier.next()
                if entry is None:
                    self._finish(session)
                    return

                url, referrer = entry
                self.state = CrawlState.PROBING
                result = await self._probe(session, url, referrer)
                if session.cancelled:
                    return

                if not session.policy.eligible(result):
                    self._set_status(session, 'Queueing page [1]...')
                    continue

                self.state = CrawlState.LOADING
                page = await self._load(session, url)
                if session.cancelled:
                    return
                if page is None:
                    continue

                self.state = CrawlState.EXTRACTING
                self._extract(session, page)
                self._set_status(session, 'Queueing page [2]...')

        except SinkUnavailable as e:
            self.logger.error(f"Result sink is gone, stopping: {e}")
            self.stop()
        except asyncio.CancelledError:
            self.logger.debug("Driver cancelled")
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error while spidering: {e}", exc_info=True)
            self.stop()

    async def _probe(self, session: SessionState, url: str, referrer: str) -> ProbeResult:
        """Probe one URL and record it. Per-URL failures become records."""
        self._set_status(session, f"Prefetching {url}")
        start_time = time.time()

        try:
            outcome = await self._probe_slot.run(
                self.fetcher.probe(url, self.probe_timeout),
                self.probe_timeout,
                lambda: ProbeTimeout(url, self.probe_timeout)
            )
            result = ProbeResult(url, outcome.status_code, outcome.mime_type, referrer)
            self._set_status(session, f"Prefetched {url} ({result.status_code} {result.mime_type})")
            self._observe('probe_ok', time.time() - start_time)

        except ProbeTimeout:
            self._set_status(session, 'Aborting HTTP Request')
            session.stats.probe_timeouts += 1
            result = ProbeResult(url, None, UNKNOWN_MIME, referrer)
            self.logger.log_url_event(logging.WARNING, url, "Probe timed out")
            self._observe('probe_timeout')

        except SinkUnavailable:
            raise

        except Exception as e:
            # FetchError or any other fetcher failure belongs to this URL alone.
            session.stats.fetch_errors += 1
            result = ProbeResult(url, None, NO_CONTENT_TYPE, referrer)
            self.logger.log_url_event(logging.WARNING, url, f"Probe failed: {e}")
            self._observe('probe_error')

        if not session.cancelled:
            self._record(session, result)
        return result

    async def _load(self, session: SessionState, url: str) -> Optional[PageLinks]:
        """Load an eligible page. Returns None when its links are lost."""
        self._set_status(session, f"Fetching {url}")

        try:
            page = await self._load_slot.run(
                self.fetcher.load(url, self.load_timeout),
                self.load_timeout,
                lambda: LoadTimeout(url, self.load_timeout)
            )
        except LoadTimeout:
            # The URL is already recorded; only further discovery is lost.
            self._set_status(session, 'Aborting page load')
            session.stats.load_timeouts += 1
            self.logger.log_url_event(logging.WARNING, url, "Page load timed out")
            self._count_load('timeout')
            return None
        except SinkUnavailable:
            raise
        except Exception as e:
            session.stats.fetch_errors += 1
            self.logger.log_url_event(logging.WARNING, url, f"Page load failed: {e}")
            self._count_load('error')
            return None

        session.stats.pages_loaded += 1
        self._count_load('ok')
        return page

    def _extract(self, session: SessionState, page: PageLinks):
        """Feed admitted links back into the frontier."""
        policy = session.policy
        frontier = session.frontier
        page_url = page.url
        self._set_status(session, f"Scanning {page_url}")

        links = list(page.nav_links)
        if policy.check_inline:
            links.extend(page.inline_links)

        queued = 0
        for link in links:
            link = normalize(link)
            if policy.admit(link, page_url) and frontier.offer(link, page_url):
                queued += 1

        # After a redirect the final URL differs from the one dequeued.
        frontier.mark_done_alias(page_url)

        session.stats.links_queued += queued
        self.logger.debug(f"Queued {queued} of {len(links)} links from {page_url}")

    def _finish(self, session: SessionState):
        self.state = CrawlState.DONE
        self._probe_slot.cancel()
        self._load_slot.cancel()
        self._set_status(session, 'Complete')
        stats = session.stats
        self.logger.info(
            f"Spidering complete: recorded={stats.urls_recorded}, "
            f"loaded={stats.pages_loaded}, probe_timeouts={stats.probe_timeouts}, "
            f"load_timeouts={stats.load_timeouts}, errors={stats.fetch_errors}, "
            f"elapsed={stats.elapsed_time:.2f}s"
        )

    def _record(self, session: SessionState, result: ProbeResult):
        self.sink.on_page_result(result)
        session.stats.urls_recorded += 1
        if self.monitor:
            self.monitor.record_result(result)

    def _set_status(self, session: SessionState, message: str):
        depth = session.frontier.size()
        self.sink.on_status(message, depth)
        if self.monitor:
            self.monitor.update_queue_size(depth)

    def _observe(self, outcome: str, duration: Optional[float] = None):
        if self.monitor:
            self.monitor.record_probe(outcome, duration)

    def _count_load(self, outcome: str):
        if self.monitor:
            self.monitor.record_page_load(outcome)

    def get_stats(self) -> Dict:
        """Get statistics of the current (or last) session."""
        if self.session is None:
            return {'state': self.state.value, 'is_running': False}
        stats = self.session.stats
        return {
            'state': self.state.value,
            'is_running': self.is_running,
            'urls_recorded': stats.urls_recorded,
            'pages_loaded': stats.pages_loaded,
            'probe_timeouts': stats.probe_timeouts,
            'load_timeouts': stats.load_timeouts,
            'fetch_errors': stats.fetch_errors,
            'links_queued': stats.links_queued,
            'urls_in_queue': self.session.frontier.size(),
            'elapsed_time': stats.elapsed_time
        }
