#!/usr/bin/env python3
"""
Main entry point for the site spider.
"""

import asyncio
import argparse
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from site_spider import __version__
from site_spider.crawler.errors import InvalidRestrictionPattern
from site_spider.crawler.fetcher import WebFetcher
from site_spider.crawler.policy import CrawlPolicy
from site_spider.crawler.scheduler import SpiderScheduler
from site_spider.crawler.urls import default_restriction
from site_spider.storage.results import ResultSink, create_sink
from site_spider.utils.config import Config, ConfigManager, config_manager
from site_spider.utils.logger import setup_logging
from site_spider.utils.monitoring import initialize_monitoring

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BAD_PATTERN = 2


class SpiderApp:
    """Main application class for the site spider."""

    def __init__(self):
        self.scheduler: Optional[SpiderScheduler] = None
        self.sink: Optional[ResultSink] = None
        self.logger = logging.getLogger(__name__)

    def setup_signal_handlers(self):
        """Stop the spider on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()

        def handle_signal(signum):
            self.logger.info(f"Received signal {signum}, stopping spider...")
            if self.scheduler:
                self.scheduler.stop()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, handle_signal, signum)
            except NotImplementedError:
                # Windows event loops have no signal support.
                pass

    def build_policy(self, config: Config) -> CrawlPolicy:
        """Compile the restriction, defaulting to the start URL's directory."""
        spider = config.spider
        restriction = spider.restriction
        if restriction is None:
            restriction = default_restriction(spider.start_url)
        return CrawlPolicy.build(
            restriction,
            allow_plus_one=spider.allow_plus_one,
            allow_arguments=spider.allow_arguments,
            check_inline=spider.check_inline
        )

    async def run(self, config: Config, dry_run: bool = False) -> int:
        """Run the spider."""
        setup_logging(asdict(config.logging))

        try:
            policy = self.build_policy(config)
        except InvalidRestrictionPattern as e:
            self.logger.error(f"Restrict regex error: {e}")
            return EXIT_BAD_PATTERN

        self.logger.info("=== SITE SPIDER STARTING ===")
        self.logger.info(f"Starting on: {config.spider.start_url}")
        self.logger.info(f"Restrict to: {policy.restriction_text}")
        self.logger.info(f"Follow one step off-pattern: {policy.allow_plus_one}")
        self.logger.info(f"Allow arguments: {policy.allow_arguments}")
        self.logger.info(f"Check inline resources: {policy.check_inline}")

        monitor = initialize_monitoring(
            config.monitoring.metrics_enabled,
            config.monitoring.prometheus_port
        )

        try:
            async with WebFetcher(
                user_agent=config.spider.user_agent,
                request_timeout=max(config.spider.probe_timeout, config.spider.load_timeout)
            ) as fetcher:
                if dry_run:
                    return await self._dry_run(config, fetcher, policy)

                self.sink = create_sink(config.output)
                self.scheduler = SpiderScheduler(
                    fetcher,
                    self.sink,
                    probe_timeout=config.spider.probe_timeout,
                    load_timeout=config.spider.load_timeout,
                    monitor=monitor
                )
                self.setup_signal_handlers()

                stats = await self.scheduler.crawl(config.spider.start_url, policy)
                self.logger.info(f"Metrics: {monitor.get_summary()}")
                self.logger.info(f"URLs recorded: {stats.urls_recorded}")

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return EXIT_ERROR

        finally:
            if self.scheduler:
                self.scheduler.stop()
            if self.sink:
                self.sink.close()
            self.logger.info("=== SITE SPIDER FINISHED ===")

        return EXIT_OK

    async def _dry_run(self, config: Config, fetcher: WebFetcher, policy: CrawlPolicy) -> int:
        """Check the configuration and probe the start URL once."""
        self.logger.info("DRY RUN MODE: probing the start URL only")
        url = config.spider.start_url
        try:
            outcome = await fetcher.probe(url, config.spider.probe_timeout)
        except Exception as e:
            self.logger.error(f"✗ Probe of {url} failed: {e}")
            return EXIT_ERROR

        self.logger.info(f"✓ Probe successful: {outcome.status_code} {outcome.mime_type}")
        if not policy.matches(url):
            self.logger.warning(f"Start URL does not match the restriction {policy.restriction_text}")
        self.logger.info("Dry run completed")
        return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Site Spider",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --start http://www.example.com/docs/
  python main.py --config spider.yaml
  python main.py --start http://www.example.com/ --restrict '^http://www\\.example\\.com/'
  python main.py --start http://www.example.com/ --output results.csv
  python main.py --start http://www.example.com/ --dry-run
        """
    )

    parser.add_argument(
        '--config',
        help='Path to a YAML configuration file'
    )
    parser.add_argument(
        '--start',
        help='URL to start spidering from'
    )
    parser.add_argument(
        '--restrict',
        help='Only spider URLs matching this regex (default: the start URL\'s directory)'
    )
    parser.add_argument(
        '--plus-one',
        action='store_true',
        default=None,
        help='Also check pages linked from a matching page, one step off-pattern'
    )
    parser.add_argument(
        '--allow-arguments',
        action='store_true',
        default=None,
        help='Follow URLs that carry query arguments'
    )
    parser.add_argument(
        '--check-inline',
        action='store_true',
        default=None,
        help='Check inline resources (images, scripts, stylesheets) too'
    )
    parser.add_argument(
        '--output',
        help='Write results to this file (.csv for CSV, anything else for JSON lines)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Probe the start URL without spidering'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'Site Spider {__version__}'
    )
    return parser


def resolve_config(args: argparse.Namespace) -> Config:
    """Load the configuration file (if any) and apply command line overrides."""
    manager = ConfigManager(args.config) if args.config else config_manager
    if args.config:
        config = manager.load_config()
    else:
        config = Config()

    spider = config.spider
    if args.start:
        spider.start_url = args.start
    if args.restrict is not None:
        spider.restriction = args.restrict
    if args.plus_one is not None:
        spider.allow_plus_one = args.plus_one
    if args.allow_arguments is not None:
        spider.allow_arguments = args.allow_arguments
    if args.check_inline is not None:
        spider.check_inline = args.check_inline

    if args.output:
        config.output.type = 'file'
        config.output.path = args.output
        config.output.format = 'csv' if args.output.lower().endswith('.csv') else 'jsonl'

    if not spider.start_url:
        raise ValueError("A start URL is required (--start or spider.start_url)")

    return manager.use(config)


def main():
    """Main entry point."""
    args = build_parser().parse_args()

    if args.config and not Path(args.config).exists():
        print(f"Error: Configuration file '{args.config}' not found.")
        return EXIT_ERROR

    try:
        config = resolve_config(args)
    except (ValueError, TypeError) as e:
        print(f"Configuration error: {e}")
        return EXIT_ERROR

    app = SpiderApp()
    try:
        return asyncio.run(app.run(config, dry_run=args.dry_run))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
