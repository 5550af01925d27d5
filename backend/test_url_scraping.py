"""Tests for the URL scraping middleware"""
import asyncio
import copy

from marlan.chat.url_scraping import BANNER, UrlScrapingMiddleware, cache_key, format_scraped_page
from marlan.db import SqliteKeyValueStore


class FakeScraper:
    def __init__(self, fail=(), slow=()):
        self.calls = []
        self.fail = set(fail)
        self.slow = set(slow)

    async def __call__(self, url):
        self.calls.append(url)
        if url in self.slow:
            await asyncio.sleep(1)
        if url in self.fail:
            raise RuntimeError("connection refused")
        return {
            "url": url,
            "title": f"Title of {url}",
            "description": "A studio page",
            "content": f"Content of {url}",
        }


def test_format_scraped_page():
    page = {"url": "https://a.com", "title": "", "description": "", "content": "Body"}
    text = format_scraped_page(page)
    assert text.startswith("# SCRAPED CONTENT FROM URL: https://a.com\n\n## Title: Untitled Page")
    assert "## Description" not in text
    assert text.endswith("## Main Content:\nBody\n\n---\nSOURCE: https://a.com")


def test_scrapes_at_most_three_urls():
    scraper = FakeScraper()
    middleware = UrlScrapingMiddleware(scraper=scraper)
    text = "https://a.com https://b.com https://c.com https://d.com"

    combined = asyncio.run(middleware.scrape_text(text))

    assert scraper.calls == ["https://a.com", "https://b.com", "https://c.com"]
    assert "Content of https://c.com" in combined
    assert "https://d.com" not in combined


def test_failures_and_timeouts_are_skipped():
    scraper = FakeScraper(fail={"https://a.com"}, slow={"https://b.com"})
    middleware = UrlScrapingMiddleware(scraper=scraper, timeout=0.05)

    combined = asyncio.run(middleware.scrape_text("https://a.com https://b.com https://c.com"))

    assert "Content of https://c.com" in combined
    assert "https://a.com" not in combined
    assert "https://b.com" not in combined


def test_text_without_urls_returns_empty_string():
    scraper = FakeScraper()
    assert asyncio.run(UrlScrapingMiddleware(scraper=scraper).scrape_text("no links here")) == ""
    assert scraper.calls == []


def test_scraped_pages_are_cached(db_path):
    scraper = FakeScraper()
    cache = SqliteKeyValueStore()
    middleware = UrlScrapingMiddleware(cache=cache, scraper=scraper)

    async def scenario():
        await middleware.scrape_text("look at www.b.org")
        await middleware.scrape_text("look at www.b.org again")
        return await cache.get(cache_key("https://www.b.org"))

    cached = asyncio.run(scenario())

    assert scraper.calls == ["https://www.b.org"]
    assert cached["title"] == "Title of https://www.b.org"


class LockedStore:
    """Key-value store that fails for the listed keys"""

    def __init__(self, locked=()):
        self.locked = set(locked)
        self.data = {}

    async def get(self, key):
        if key in self.locked:
            raise RuntimeError("database is locked")
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        if key in self.locked:
            raise RuntimeError("database is locked")
        self.data[key] = value


def test_cache_errors_skip_only_that_url():
    scraper = FakeScraper()
    cache = LockedStore(locked={cache_key("https://b.com")})
    middleware = UrlScrapingMiddleware(cache=cache, scraper=scraper)

    combined = asyncio.run(middleware.scrape_text("https://a.com https://b.com https://c.com"))

    assert "Content of https://a.com" in combined
    assert "Content of https://c.com" in combined
    assert "https://b.com" not in combined
    assert cache_key("https://a.com") in cache.data


def test_transform_appends_to_system_message_without_mutating_input():
    middleware = UrlScrapingMiddleware(scraper=FakeScraper())
    messages = [
        {"role": "system", "content": "Base prompt"},
        {"role": "user", "content": "Review https://a.com please"},
    ]
    original = copy.deepcopy(messages)

    result = asyncio.run(middleware.transform(messages))

    assert messages == original
    assert result[0]["content"].startswith("Base prompt\n\n" + BANNER)
    assert "Content of https://a.com" in result[0]["content"]
    assert result[1] == original[1]


def test_transform_inserts_system_message_when_missing():
    middleware = UrlScrapingMiddleware(scraper=FakeScraper())
    messages = [{"role": "user", "content": "Review https://a.com"}]

    result = asyncio.run(middleware.transform(messages))

    assert [m["role"] for m in result] == ["system", "user"]
    assert result[0]["content"].startswith(BANNER)


def test_transform_without_urls_returns_equal_copy():
    middleware = UrlScrapingMiddleware(scraper=FakeScraper())
    messages = [{"role": "system", "content": "Base"}, {"role": "user", "content": "hello"}]

    result = asyncio.run(middleware.transform(messages))

    assert result == messages
    assert result is not messages
