"""Web scraping tools: requests + BeautifulSoup"""
import asyncio
import re
from typing import Dict

import requests
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from ..errors import ScrapeError
from ..utils.structured_logger import get_logger
from .common import create_basic_tool
from .url_utils import ensure_protocol, extract_urls

logger = get_logger(__name__)

MAX_CONTENT_LENGTH = 5000
REQUEST_TIMEOUT = 20

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# Tried in order; the first match with enough text is the page body
CONTENT_SELECTORS = [
    "article", "main", "[role=main]", "#content", ".content",
    ".entry-content", ".post-content", ".page-content", "#main-content", ".main-content",
]


class WebScraperInput(BaseModel):
    url: str = Field(description="The URL to scrape")


class DetectUrlsInput(BaseModel):
    text: str = Field(description="Text that may contain URLs")


def parse_html(html: str, url: str) -> Dict[str, str]:
    """
    Extract title, description and main text from an HTML document

    Args:
        html: Raw HTML
        url: Page URL (returned unchanged)

    Returns:
        {"url", "title", "description", "content"} with content capped at 5000 chars
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style", "noscript", "nav", "footer", "header", "iframe"]):
        tag.decompose()

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(strip=True) if h1 else "No title found"

    description = ""
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        meta = soup.find("meta", attrs=attrs)
        if meta and meta.get("content"):
            description = meta["content"].strip()
            break
    if not description:
        first_p = soup.find("p")
        description = first_p.get_text(strip=True)[:300] if first_p else "No description found"

    content = ""
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element:
            content = element.get_text(separator=" ", strip=True)
            if len(content) >= 200:
                break
    if len(content) < 200 and soup.body:
        content = soup.body.get_text(separator=" ", strip=True)

    content = re.sub(r"\s+", " ", content).strip()[:MAX_CONTENT_LENGTH]

    return {"url": url, "title": title, "description": description, "content": content}


def scrape_url(url: str) -> Dict[str, str]:
    """
    Fetch and parse a page (blocking)

    Raises:
        ScrapeError: when the request fails or the response is not HTML
    """
    full_url = ensure_protocol(url)
    try:
        response = requests.get(full_url, headers=REQUEST_HEADERS, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise ScrapeError(f"Timed out fetching {full_url}") from e
    except requests.exceptions.RequestException as e:
        raise ScrapeError(f"Failed to fetch {full_url}: {e}") from e

    content_type = response.headers.get("Content-Type", "")
    if content_type and "html" not in content_type and "text" not in content_type:
        raise ScrapeError(f"Unsupported content type {content_type} for {full_url}")

    page = parse_html(response.text, full_url)
    logger.info("URL scraped", url=full_url, content_length=len(page["content"]))
    return page


async def scrape_url_async(url: str) -> Dict[str, str]:
    """Run scrape_url in a worker thread"""
    return await asyncio.to_thread(scrape_url, url)


async def web_scraper(url: str) -> dict:
    return await scrape_url_async(url)


async def detect_and_scrape_urls(text: str) -> dict:
    """Scrape the first URL found in the text"""
    urls = extract_urls(text)
    if not urls:
        return {"urls": [], "message": "No URLs detected in the text"}

    page = await scrape_url_async(urls[0])
    return {"urls": urls, "scraped": page}


web_scraper_tool = create_basic_tool(
    "webScraper",
    "Scrape the title, description and main text of a web page. Use when the user shares a URL.",
    WebScraperInput,
    web_scraper,
)

detect_and_scrape_tool = create_basic_tool(
    "detectAndScrapeUrls",
    "Detect URLs in a piece of text and scrape the first one.",
    DetectUrlsInput,
    detect_and_scrape_urls,
)
