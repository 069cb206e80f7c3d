"""
Parser Tests

Tests for navigational and inline link extraction.
"""

from site_spider.crawler.parser import ContentParser

PAGE = 'http://example.com/a/index.html'

HTML = """
<html>
<head>
  <link rel="stylesheet" href="/css/site.css">
  <script src="js/app.js"></script>
</head>
<body>
  <a href="b.html">B</a>
  <a href="http://other.com/x">Other</a>
  <a href="b.html">B again</a>
  <a href="#top">Top</a>
  <a href="mailto:someone@example.com">Mail</a>
  <a href="javascript:void(0)">JS</a>
  <a>No href</a>
  <map><area href="/map/target" alt="t"></map>
  <iframe src="frame.html"></iframe>
  <form action="/search"></form>
  <img src="logo.png" srcset="logo-1x.png 1x, logo-2x.png 2x">
  <img src="data:image/gif;base64,R0lGODlhAQABAAAAACw=">
  <object data="movie.swf"></object>
</body>
</html>
"""


def test_navigational_links_are_resolved_in_order():
    nav, _ = ContentParser().extract_links(PAGE, HTML)

    assert nav == [
        'http://example.com/a/b.html',
        'http://other.com/x',
        'http://example.com/a/index.html#top',
        'http://example.com/map/target',
        'http://example.com/a/frame.html',
        'http://example.com/search',
    ]


def test_inline_links_are_kept_separate():
    _, inline = ContentParser().extract_links(PAGE, HTML)

    assert inline == [
        'http://example.com/a/logo.png',
        'http://example.com/a/js/app.js',
        'http://example.com/css/site.css',
        'http://example.com/a/movie.swf',
        'http://example.com/a/logo-1x.png',
        'http://example.com/a/logo-2x.png',
    ]


def test_base_href_is_honored():
    html = '<html><head><base href="http://cdn.example.com/root/"></head>' \
           '<body><a href="page">p</a></body></html>'

    nav, _ = ContentParser().extract_links(PAGE, html)

    assert nav == ['http://cdn.example.com/root/page']


def test_malformed_base_href_falls_back_to_page_url():
    html = '<html><head><base href="http://[oops/"></head>' \
           '<body><a href="page">p</a></body></html>'

    nav, _ = ContentParser().extract_links(PAGE, html)

    assert nav == ['http://example.com/a/page']


def test_parse_returns_page_links():
    page = ContentParser().parse(PAGE, HTML)

    assert page.url == PAGE
    assert 'http://example.com/a/b.html' in page.nav_links
    assert 'http://example.com/a/logo.png' in page.inline_links


def test_empty_document_has_no_links():
    nav, inline = ContentParser().extract_links(PAGE, '')

    assert nav == []
    assert inline == []
