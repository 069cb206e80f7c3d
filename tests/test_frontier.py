"""
URL Frontier Tests
"""

from site_spider.crawler.url_frontier import URLFrontier
from site_spider.crawler.urls import ROOT_REFERRER

SEED = 'http://example.com/a/'


def test_add_seed_resets_frontier():
    frontier = URLFrontier()
    frontier.offer('http://example.com/old', SEED)
    frontier.done.add('http://example.com/gone')

    frontier.add_seed(SEED)

    assert frontier.todo == {SEED: ROOT_REFERRER}
    assert frontier.done == set()
    assert frontier.size() == 1


def test_next_drains_in_insertion_order():
    frontier = URLFrontier()
    frontier.add_seed(SEED)
    frontier.offer('http://example.com/a/2', SEED)
    frontier.offer('http://example.com/a/1', SEED)

    assert frontier.next() == (SEED, ROOT_REFERRER)
    assert frontier.next() == ('http://example.com/a/2', SEED)
    assert frontier.next() == ('http://example.com/a/1', SEED)
    assert frontier.next() is None
    assert frontier.is_empty()


def test_next_moves_url_to_done():
    frontier = URLFrontier()
    frontier.add_seed(SEED)

    frontier.next()

    assert SEED in frontier.done
    assert SEED not in frontier.todo
    assert SEED in frontier


def test_offer_is_idempotent():
    frontier = URLFrontier()
    frontier.add_seed(SEED)

    assert frontier.offer('http://example.com/a/b', 'first') is True
    assert frontier.offer('http://example.com/a/b', 'second') is False

    assert len(frontier) == 2
    assert frontier.todo['http://example.com/a/b'] == 'first'


def test_done_urls_are_never_requeued():
    frontier = URLFrontier()
    frontier.add_seed(SEED)
    frontier.next()

    assert frontier.offer(SEED, 'http://example.com/a/b') is False
    assert frontier.size() == 0


def test_mark_done_alias_withdraws_pending_url():
    frontier = URLFrontier()
    frontier.add_seed(SEED)
    frontier.offer('http://example.com/a/new', SEED)

    frontier.mark_done_alias('http://example.com/a/new')
    frontier.mark_done_alias('http://example.com/a/never-queued')

    assert 'http://example.com/a/new' not in frontier.todo
    assert {'http://example.com/a/new', 'http://example.com/a/never-queued'} <= frontier.done
    assert not set(frontier.todo) & frontier.done
    assert frontier.offer('http://example.com/a/never-queued', SEED) is False


def test_clear_and_stats():
    frontier = URLFrontier()
    frontier.add_seed(SEED)
    frontier.next()
    frontier.offer('http://example.com/a/b', SEED)

    assert frontier.get_stats() == {'total_queued': 1, 'total_processed': 1}

    frontier.clear()

    assert frontier.get_stats() == {'total_queued': 0, 'total_processed': 0}
