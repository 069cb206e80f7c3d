"""
Site Spider

A bounded web spider that walks one site and records the status of every URL it finds.
"""

__version__ = "1.0.0"
__author__ = "Alex Nguyen"
__description__ = "A restriction-scoped site spider that reports HTTP status, MIME type and referrer for each URL"
