"""
Exceptions raised by the spider core and its collaborators.
"""


class SpiderError(Exception):
    """Base exception for spider operations."""
    pass


class InvalidRestrictionPattern(SpiderError, ValueError):
    """The restriction regex could not be compiled."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid restriction pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class SinkUnavailable(SpiderError):
    """The result/status sink has gone away."""
    pass


class FetchError(SpiderError):
    """A probe or page load failed before a response was received."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class WatchdogTimeout(SpiderError):
    """An in-flight operation outlived its watchdog."""

    def __init__(self, url: str, timeout: float):
        super().__init__(f"{url} did not complete within {timeout}s")
        self.url = url
        self.timeout = timeout


class ProbeTimeout(WatchdogTimeout):
    pass


class LoadTimeout(WatchdogTimeout):
    pass
