"""Shared fixtures: fake Playwright pages/cards and an in-memory Redis stand-in."""

from collections import defaultdict
from urllib.parse import parse_qs, urlparse

import pytest
from playwright.async_api import Error as PlaywrightError

from pc_scraper.config import CategoryConfig, ScrapeConfig
from pc_scraper.ingest.page_extractor import CARD_SELECTOR, PRICE_SELECTOR, TITLE_FALLBACK_SELECTOR, TITLE_SELECTOR


class FakeElement:
    """Locator for one selector inside a card (``card.locator(sel).first``)."""

    def __init__(self, text, error=None):
        self._text = text
        self._error = error

    @property
    def first(self):
        return self

    async def count(self):
        if self._error:
            raise self._error
        return 0 if self._text is None else 1

    async def text_content(self, timeout=None):
        if self._error:
            raise self._error
        return self._text


class FakeCard:
    """A product card; selectors it does not know resolve to no element."""

    def __init__(self, title=None, price=None, fallback_title=None, error=None):
        self._texts = {
            TITLE_SELECTOR: title,
            TITLE_FALLBACK_SELECTOR: fallback_title,
            PRICE_SELECTOR: price,
        }
        self._error = error

    def locator(self, selector):
        return FakeElement(self._texts.get(selector), self._error)


class FakeCardList:
    """``page.locator(CARD_SELECTOR)``; ``counts`` overrides successive count() results."""

    def __init__(self, cards, counts=None):
        self.cards = cards
        self.counts = list(counts) if counts else None

    async def count(self):
        if self.counts:
            return self.counts.pop(0)
        return len(self.cards)

    async def all(self):
        return list(self.cards)


class FakeMouse:
    def __init__(self):
        self.wheels = []

    async def wheel(self, delta_x, delta_y):
        self.wheels.append((delta_x, delta_y))


class FakePage:
    """
    Page serving a fixed card list per ``?page=N``.

    Args:
        pages: {page_number: [FakeCard, ...]} (missing pages have no cards)
        titles: {page_number: document title}
        fail_on: page numbers whose navigation raises
        counts: {page_number: [count, ...]} scripted card counts
    """

    def __init__(self, pages=None, titles=None, fail_on=(), counts=None):
        self.pages = pages or {}
        self.titles = titles or {}
        self.fail_on = set(fail_on)
        self.counts = counts or {}
        self.visited = []
        self.goto_kwargs = []
        self.mouse = FakeMouse()
        self._current = None

    async def goto(self, url, **kwargs):
        self.visited.append(url)
        self.goto_kwargs.append(kwargs)
        page_number = int(parse_qs(urlparse(url).query)["page"][0])
        if page_number in self.fail_on:
            raise PlaywrightError(f"Timeout 30000ms exceeded navigating to {url}")
        self._current = page_number

    async def title(self):
        return self.titles.get(self._current, "Pichau")

    def locator(self, selector):
        assert selector == CARD_SELECTOR
        return FakeCardList(self.pages.get(self._current, []), self.counts.get(self._current))


class FakePipeline:
    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def lrem(self, *args):
        self._ops.append(("lrem", args))

    def rpush(self, *args):
        self._ops.append(("rpush", args))

    async def execute(self):
        results = []
        for name, args in self._ops:
            results.append(await getattr(self._redis, name)(*args))
        self._ops.clear()
        return results


class FakeRedis:
    """The list commands used by the queue, backed by Python lists (index 0 is LEFT)."""

    def __init__(self):
        self.lists = defaultdict(list)
        self.closed = False

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True

    async def lpush(self, name, *values):
        for value in values:
            self.lists[name].insert(0, value)
        return len(self.lists[name])

    async def rpush(self, name, *values):
        self.lists[name].extend(values)
        return len(self.lists[name])

    async def llen(self, name):
        return len(self.lists[name])

    async def lrange(self, name, start, end):
        items = self.lists[name]
        return items[start:] if end == -1 else items[start:end + 1]

    async def lrem(self, name, count, value):
        items = self.lists[name]
        removed = 0
        while value in items and (count == 0 or removed < count):
            items.remove(value)
            removed += 1
        return removed

    async def lmove(self, first_list, second_list, src="LEFT", dest="RIGHT"):
        source = self.lists[first_list]
        if not source:
            return None
        value = source.pop(0) if src == "LEFT" else source.pop()
        if dest == "LEFT":
            self.lists[second_list].insert(0, value)
        else:
            self.lists[second_list].append(value)
        return value

    async def blmove(self, first_list, second_list, timeout, src="LEFT", dest="RIGHT"):
        return await self.lmove(first_list, second_list, src, dest)

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class UnreachableSession:
    """Session whose connection is refused, as asyncpg does when the server is down."""

    async def __aenter__(self):
        raise ConnectionRefusedError(111, "Connect call failed")

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def gpu_category():
    return CategoryConfig(
        name="GPU",
        url="https://www.pichau.com.br/hardware/placa-de-video",
        filter="placa",
    )


@pytest.fixture
def fast_config(gpu_category):
    """Run configuration with every wait set to zero."""
    return ScrapeConfig(
        max_pages=2,
        wait_time_min=0.0,
        wait_time_max=0.0,
        category_delay=0.0,
        cloudflare_wait=0.0,
        empty_retry_delay=0.0,
        categories=(gpu_category,),
    )


@pytest.fixture
def sleeps():
    """Records requested sleep durations without sleeping."""
    calls = []

    async def fake_sleep(seconds):
        calls.append(seconds)

    fake_sleep.calls = calls
    return fake_sleep


@pytest.fixture
def fake_redis():
    return FakeRedis()
