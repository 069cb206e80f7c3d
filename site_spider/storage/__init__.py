"""
Result sinks for the site spider.
"""

from .results import ResultSink, ConsoleResultSink, FileResultSink, create_sink

__all__ = ['ResultSink', 'ConsoleResultSink', 'FileResultSink', 'create_sink']
