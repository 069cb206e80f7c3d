"""
Fetcher Tests

Runs WebFetcher against a local aiohttp server.
"""

import asyncio
import re

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from conftest import RecordingSink
from site_spider.crawler.errors import FetchError, LoadTimeout, ProbeTimeout
from site_spider.crawler.fetcher import WebFetcher
from site_spider.crawler.parser import ContentParser
from site_spider.crawler.policy import CrawlPolicy
from site_spider.crawler.scheduler import CrawlState, SpiderScheduler

INDEX_HTML = """
<html><body>
  <a href="page.html">Page</a>
  <img src="/img/logo.png">
</body></html>
"""


async def index(request):
    return web.Response(text=INDEX_HTML, content_type='text/html')


async def moved(request):
    raise web.HTTPMovedPermanently(location='/a/')


async def binary(request):
    return web.Response(body=b'\x89PNG', content_type='image/png')


async def slow(request):
    await asyncio.sleep(0.5)
    return web.Response(text='late', content_type='text/html')


def make_app():
    app = web.Application()
    app.router.add_get('/a/', index)
    app.router.add_get('/moved', moved)
    app.router.add_get('/logo.png', binary)
    app.router.add_get('/slow', slow)
    return app


@pytest.mark.asyncio
async def test_probe_reports_status_and_content_type():
    async with TestServer(make_app()) as server, WebFetcher('test-agent') as fetcher:
        outcome = await fetcher.probe(str(server.make_url('/a/')), timeout=5)
        missing = await fetcher.probe(str(server.make_url('/missing')), timeout=5)

    assert outcome.status_code == 200
    assert outcome.mime_type.startswith('text/html')
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_probe_does_not_follow_redirects():
    async with TestServer(make_app()) as server, WebFetcher('test-agent') as fetcher:
        outcome = await fetcher.probe(str(server.make_url('/moved')), timeout=5)

    assert outcome.status_code == 301


@pytest.mark.asyncio
async def test_load_follows_redirect_and_extracts_links():
    async with TestServer(make_app()) as server, WebFetcher('test-agent') as fetcher:
        page = await fetcher.load(str(server.make_url('/moved')), timeout=5)
        base = str(server.make_url('/'))

    assert page.url == base + 'a/'
    assert page.nav_links == [base + 'a/page.html']
    assert page.inline_links == [base + 'img/logo.png']


@pytest.mark.asyncio
async def test_load_of_binary_content_yields_no_links():
    async with TestServer(make_app()) as server, WebFetcher('test-agent') as fetcher:
        page = await fetcher.load(str(server.make_url('/logo.png')), timeout=5)

    assert page.nav_links == []
    assert page.inline_links == []


@pytest.mark.asyncio
async def test_slow_probe_and_load_time_out():
    async with TestServer(make_app()) as server, WebFetcher('test-agent') as fetcher:
        url = str(server.make_url('/slow'))
        with pytest.raises(ProbeTimeout):
            await fetcher.probe(url, timeout=0.1)
        with pytest.raises(LoadTimeout):
            await fetcher.load(url, timeout=0.1)

    assert fetcher.get_stats()['probe_failures'] == 1
    assert fetcher.get_stats()['load_failures'] == 1


@pytest.mark.asyncio
async def test_unreachable_host_raises_fetch_error():
    server = TestServer(make_app())
    await server.start_server()
    url = str(server.make_url('/a/'))
    await server.close()

    async with WebFetcher('test-agent') as fetcher:
        with pytest.raises(FetchError):
            await fetcher.probe(url, timeout=5)


class BrokenParser(ContentParser):
    def parse(self, url, html_content):
        raise RuntimeError("parser exploded")


@pytest.mark.asyncio
async def test_parse_failure_raises_fetch_error():
    async with TestServer(make_app()) as server, \
            WebFetcher('test-agent', parser=BrokenParser()) as fetcher:
        with pytest.raises(FetchError):
            await fetcher.load(str(server.make_url('/a/')), timeout=5)

    assert fetcher.get_stats()['load_failures'] == 1


def html_handler(text):
    async def handler(request):
        return web.Response(text=text, content_type='text/html')
    return handler


@pytest.mark.asyncio
async def test_malformed_base_page_does_not_end_the_crawl():
    app = web.Application()
    app.router.add_get('/a/', html_handler('<a href="bad">bad</a> <a href="c">c</a>'))
    app.router.add_get('/a/bad', html_handler(
        '<html><head><base href="http://[oops/"></head>'
        '<body><a href="c">c</a></body></html>'
    ))
    app.router.add_get('/a/c', html_handler('<p>done</p>'))
    sink = RecordingSink()

    async with TestServer(app) as server, WebFetcher('test-agent') as fetcher:
        seed = str(server.make_url('/a/'))
        policy = CrawlPolicy.build('^' + re.escape(seed))
        scheduler = SpiderScheduler(fetcher, sink, probe_timeout=5, load_timeout=5)
        stats = await scheduler.crawl(seed, policy)

    assert sink.urls == [seed, seed + 'bad', seed + 'c']
    assert stats.pages_loaded == 3
    assert scheduler.state == CrawlState.DONE
