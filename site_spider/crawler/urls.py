"""
URL helpers: fragment stripping and the default restriction pattern.
"""

import re

ROOT_REFERRER = '[root page]'


def trim_after(text: str, sep: str) -> str:
    """
    Remove the first occurrence of ``sep`` and everything after it.

    >>> trim_after('ab-cd-ef', '-')
    'ab'
    """
    index = text.find(sep)
    if index != -1:
        return text[:index]
    return text


def normalize(url: str) -> str:
    """Strip the fragment. Query strings are left alone."""
    return trim_after(url, '#')


def default_restriction(url: str) -> str:
    """
    Build a regex that keeps the spider inside the seed URL's directory.

    The fragment, query and filename are trimmed off, the remainder is
    escaped and anchored at the start.
    """
    allowed = trim_after(normalize(url.strip()), '?')
    slash = allowed.rfind('/')
    if slash > len('https://'):
        allowed = allowed[:slash + 1]
    return '^' + re.escape(allowed)
