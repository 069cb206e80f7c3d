"""
URL Frontier implementation for managing URLs to spider.
Keeps the pending (todo) and finished (done) URL sets disjoint.
"""

import logging
from typing import Dict, Optional, Set, Tuple

from .urls import ROOT_REFERRER


class URLFrontier:
    """
    Manages the URLs of one spidering session.

    ``todo`` maps each pending URL to the URL that discovered it and is
    drained in insertion order. ``done`` holds every URL that has been
    dequeued or otherwise finished. A URL is never in both, and a URL in
    ``done`` is never queued again.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.todo: Dict[str, str] = {}
        self.done: Set[str] = set()

    def add_seed(self, url: str):
        """Reset the frontier to hold only the seed URL."""
        self.todo = {url: ROOT_REFERRER}
        self.done = set()
        self.logger.debug(f"Seeded frontier with {url}")

    def next(self) -> Optional[Tuple[str, str]]:
        """
        Pop the oldest pending URL and mark it done.
        Returns (url, referrer), or None when nothing is left.
        """
        if not self.todo:
            return None

        url = next(iter(self.todo))
        referrer = self.todo.pop(url)
        self.done.add(url)
        return url, referrer

    def offer(self, url: str, referrer: str) -> bool:
        """
        Queue a URL unless it has been seen before.
        Returns True if the URL was added.
        """
        if url in self.done or url in self.todo:
            return False
        self.todo[url] = referrer
        self.logger.debug(f"Queued {url} (from {referrer})")
        return True

    def mark_done_alias(self, url: str):
        """
        Mark a URL done without dequeuing it.

        Used for the final URL of a redirect chain so it is never
        spidered on its own.
        """
        self.todo.pop(url, None)
        self.done.add(url)

    def clear(self):
        self.todo.clear()
        self.done.clear()

    def size(self) -> int:
        """Number of pending URLs."""
        return len(self.todo)

    def __len__(self) -> int:
        return len(self.todo)

    def __contains__(self, url: str) -> bool:
        return url in self.todo or url in self.done

    def is_empty(self) -> bool:
        return not self.todo

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        return {
            'total_queued': len(self.todo),
            'total_processed': len(self.done)
        }
