"""URL scraping middleware: scrape links from the latest user message into the system prompt"""
import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional

from ..tools.url_utils import ensure_protocol, extract_urls
from ..tools.web_scraper import scrape_url_async
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

CACHE_TTL_SECONDS = 6 * 60 * 60
MAX_URLS = 3
SCRAPE_TIMEOUT_SECONDS = 15.0

BANNER_RULE = "=" * 80
BANNER = (
    f"{BANNER_RULE}\n"
    "## IMPORTANT: SCRAPED WEB CONTENT FROM USER'S URLS\n"
    "The following content has been automatically extracted from URLs in the user's message.\n"
    "You MUST use this information as your primary source when answering questions about these URLs.\n"
    "Do not claim you cannot access the content - it is provided below and you must use it.\n"
    f"{BANNER_RULE}"
)

Scraper = Callable[[str], Awaitable[Dict[str, str]]]


def format_scraped_page(page: Dict[str, str]) -> str:
    """Markdown rendering of one scraped page"""
    parts = [
        f"# SCRAPED CONTENT FROM URL: {page['url']}",
        f"## Title: {page.get('title') or 'Untitled Page'}",
    ]
    if page.get("description"):
        parts.append(f"## Description:\n{page['description']}")
    parts.append(f"## Main Content:\n{page.get('content', '')}")
    parts.append(f"---\nSOURCE: {page['url']}")
    return "\n\n".join(parts)


def cache_key(url: str) -> str:
    return f"scrape:{url}"


class UrlScrapingMiddleware:
    """
    Detects URLs in the last user message and scrapes them

    Pages are cached for six hours. At most three URLs are processed per
    request, each with its own timeout; failures are logged and skipped.
    """

    def __init__(
        self,
        cache=None,
        scraper: Scraper = scrape_url_async,
        max_urls: int = MAX_URLS,
        timeout: float = SCRAPE_TIMEOUT_SECONDS,
        cache_ttl: int = CACHE_TTL_SECONDS,
    ):
        self.cache = cache
        self.scraper = scraper
        self.max_urls = max_urls
        self.timeout = timeout
        self.cache_ttl = cache_ttl

    async def _scrape_one(self, url: str) -> Optional[Dict[str, str]]:
        full_url = ensure_protocol(url)
        key = cache_key(full_url)

        start = time.perf_counter()
        try:
            if self.cache is not None:
                cached = await self.cache.get(key)
                if cached:
                    logger.info("Using cached scraped content", url=full_url)
                    return cached

            page = await asyncio.wait_for(self.scraper(full_url), timeout=self.timeout)
            logger.info(
                "URL scraped",
                url=full_url,
                content_length=len(page.get("content", "")),
                duration_ms=round((time.perf_counter() - start) * 1000),
            )

            if self.cache is not None:
                await self.cache.set(key, page, ex=self.cache_ttl)
            return page
        except asyncio.TimeoutError:
            logger.warning("Scraping timed out", url=full_url, timeout_s=self.timeout)
            return None
        except Exception as e:
            logger.error("Error scraping URL", url=full_url, error=str(e))
            return None

    async def scrape_urls(self, urls: List[str]) -> List[Dict[str, str]]:
        """Scrape up to max_urls URLs in order, dropping failures"""
        pages = []
        for url in urls[: self.max_urls]:
            page = await self._scrape_one(url)
            if page:
                pages.append(page)
        return pages

    async def scrape_text(self, text: str) -> str:
        """Formatted content of the URLs found in text, or "" when none could be scraped"""
        urls = extract_urls(text)
        if not urls:
            return ""
        pages = await self.scrape_urls(urls)
        return "\n\n".join(format_scraped_page(p) for p in pages)

    async def transform(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """
        Return a copy of messages with scraped content added to the system message

        A system message is prepended when none exists. The input list and its
        dicts are left untouched.
        """
        last_user = next((m for m in reversed(messages) if m.get("role") == "user"), None)
        if last_user is None:
            return list(messages)

        combined = await self.scrape_text(last_user.get("content") or "")
        if not combined:
            return list(messages)

        block = f"\n\n{BANNER}\n\n{combined}\n\n{BANNER_RULE}\n"
        result = [dict(m) for m in messages]
        system_index = next((i for i, m in enumerate(result) if m.get("role") == "system"), None)
        if system_index is None:
            result.insert(0, {"role": "system", "content": block.lstrip()})
        else:
            result[system_index]["content"] = (result[system_index].get("content") or "") + block

        logger.info("Enhanced system prompt with scraped content", content_length=len(combined))
        return result
