"""
Monitoring and metrics collection for the site spider.
"""

import logging
import time
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class CrawlerMonitor:
    """
    Prometheus metrics for a spidering session.

    Metrics live in a private registry so several monitors (or tests)
    can coexist in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.logger = logging.getLogger(__name__)
        self.registry = registry or CollectorRegistry()
        self.start_time = time.time()

        self.probes_total = Counter(
            'spider_probes_total',
            'HEAD probes by outcome',
            ['outcome'],
            registry=self.registry
        )
        self.page_loads_total = Counter(
            'spider_page_loads_total',
            'Page loads by outcome',
            ['outcome'],
            registry=self.registry
        )
        self.results_total = Counter(
            'spider_results_total',
            'Results recorded by status class',
            ['status_class'],
            registry=self.registry
        )
        self.queue_size = Gauge(
            'spider_queue_size',
            'Number of URLs waiting in the frontier',
            registry=self.registry
        )
        self.probe_seconds = Histogram(
            'spider_probe_seconds',
            'Time taken by successful probes',
            registry=self.registry
        )

    def start_server(self, port: int):
        """Expose the metrics over HTTP."""
        start_http_server(port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {port}")

    def record_probe(self, outcome: str, duration: Optional[float] = None):
        self.probes_total.labels(outcome=outcome).inc()
        if duration is not None:
            self.probe_seconds.observe(duration)

    def record_page_load(self, outcome: str):
        self.page_loads_total.labels(outcome=outcome).inc()

    def record_result(self, result):
        self.results_total.labels(status_class=result.status_class).inc()

    def update_queue_size(self, size: int):
        self.queue_size.set(size)

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read a sample back from the registry (0.0 when absent)."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the session's metrics."""
        runtime = time.time() - self.start_time
        summary: Dict[str, Any] = {'runtime_seconds': runtime}
        for metric in self.registry.collect():
            for sample in metric.samples:
                if sample.name.endswith('_total'):
                    key = sample.name
                    if sample.labels:
                        key += '{' + ','.join(f"{k}={v}" for k, v in sorted(sample.labels.items())) + '}'
                    summary[key] = sample.value
        summary['queue_size'] = self.get_value('spider_queue_size')
        return summary


def initialize_monitoring(enable_server: bool = False, port: int = 8000) -> CrawlerMonitor:
    """Create a monitor and optionally start its HTTP endpoint."""
    monitor = CrawlerMonitor()
    if enable_server:
        monitor.start_server(port)
    return monitor
