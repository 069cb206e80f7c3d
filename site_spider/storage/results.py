"""
Result sinks: where probe results and status lines end up.
Supports console (log) output and JSON-lines / CSV files.
"""

import csv
import json
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from pathlib import Path
from typing import Any, Dict, Optional

from ..crawler.errors import SinkUnavailable
from ..crawler.policy import ProbeResult
from ..utils.config import OutputConfig

CSV_FIELDS = ['url', 'status_code', 'mime_type', 'referrer']


def describe_status(status_code: Optional[int]) -> str:
    """``404`` -> ``'404 Not Found'``; ``None`` -> ``'Unable to load'``."""
    if not status_code:
        return 'Unable to load'
    try:
        return f"{status_code} {HTTPStatus(status_code).phrase}"
    except ValueError:
        return str(status_code)


class ResultSink:
    """Base class for result sinks."""

    def on_status(self, message: str, queue_depth: int):
        """Receive a status line and the number of URLs still queued."""
        raise NotImplementedError

    def on_page_result(self, result: ProbeResult):
        """Receive the record for one dequeued URL."""
        raise NotImplementedError

    def close(self):
        """Release the sink's destination."""
        pass


class ConsoleResultSink(ResultSink):
    """Logs status lines and one table row per result."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.status = ''
        self.queue_depth = 0
        self.counts: Dict[str, int] = {}

    def on_status(self, message: str, queue_depth: int):
        self.status = message
        self.queue_depth = queue_depth
        self.logger.debug(f"[queue {queue_depth}] {message}")

    def on_page_result(self, result: ProbeResult):
        status_class = result.status_class
        self.counts[status_class] = self.counts.get(status_class, 0) + 1
        self.logger.info(
            f"{result.url} | {describe_status(result.status_code)} | "
            f"{result.mime_essence} | {result.referrer}"
        )

    def close(self):
        if self.counts:
            summary = ', '.join(f"{k}={v}" for k, v in sorted(self.counts.items()))
            self.logger.info(f"Results by status class: {summary}")


class FileResultSink(ResultSink):
    """
    Appends results to a JSON-lines or CSV file.

    A summary with per-status-class counts is written next to the results
    file on close. Writing after close raises SinkUnavailable.
    """

    def __init__(self, path: str, format: str = 'jsonl'):
        if format not in ('jsonl', 'csv'):
            raise ValueError(f"Unknown result format: {format}")
        self.path = Path(path)
        self.format = format
        self.logger = logging.getLogger(__name__)

        self._file = None
        self._writer = None
        self.status = ''
        self.queue_depth = 0
        self.stats: Dict[str, Any] = {
            'total_recorded': 0,
            'by_status_class': {}
        }

    def open(self):
        """Create the results file, truncating any previous run."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, 'w', encoding='utf-8', newline='')
        if self.format == 'csv':
            self._writer = csv.DictWriter(self._file, fieldnames=CSV_FIELDS)
            self._writer.writeheader()
        self.logger.info(f"Writing results to {self.path}")
        return self

    @property
    def summary_path(self) -> Path:
        return self.path.with_name(self.path.name + '.summary.json')

    def on_status(self, message: str, queue_depth: int):
        self._ensure_open()
        self.status = message
        self.queue_depth = queue_depth

    def on_page_result(self, result: ProbeResult):
        self._ensure_open()
        row = result.to_dict()
        try:
            if self._writer is not None:
                self._writer.writerow(row)
            else:
                self._file.write(json.dumps(row, ensure_ascii=False) + '\n')
            self._file.flush()
        except (OSError, ValueError) as e:
            raise SinkUnavailable(f"Cannot write to {self.path}: {e}") from e

        self.stats['total_recorded'] += 1
        by_class = self.stats['by_status_class']
        by_class[result.status_class] = by_class.get(result.status_class, 0) + 1

    def close(self):
        """Close the results file and save the summary."""
        if self._file is None:
            return
        self._file.close()
        self._file = None
        self._writer = None

        summary = dict(self.stats)
        summary['finished_at'] = datetime.now(timezone.utc).isoformat()
        with open(self.summary_path, 'w', encoding='utf-8') as f:
            json.dump(summary, f, indent=2)
        self.logger.info(f"Recorded {self.stats['total_recorded']} results to {self.path}")

    def _ensure_open(self):
        if self._file is None or self._file.closed:
            raise SinkUnavailable(f"Results file {self.path} is not open")


def create_sink(config: OutputConfig) -> ResultSink:
    """Build the result sink named by the output configuration."""
    output_type = config.type.lower()

    if output_type == 'console':
        return ConsoleResultSink()
    elif output_type == 'file':
        return FileResultSink(config.path, config.format).open()
    raise ValueError(f"Unknown output type: {output_type}")
