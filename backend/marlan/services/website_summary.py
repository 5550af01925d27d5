"""Website summaries for studio profiles"""
import asyncio
import time

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel

from ..chat.url_scraping import format_scraped_page
from ..errors import ScrapeError
from ..llm import get_llm
from ..tools.url_utils import ensure_protocol
from ..tools.web_scraper import scrape_url_async
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

MAX_WORDS = 600
SCRAPE_TIMEOUT_SECONDS = 15.0
SUMMARY_TEMPERATURE = 0.3

summary_prompt = ChatPromptTemplate.from_messages([
    ("human",
     "You are a professional summarization assistant. Summarize the following website content "
     "in approximately {max_words} words.\n"
     "Focus on the main offerings, value proposition, and key information a photography business "
     "owner would find valuable.\n"
     "Make the summary clear, informative, and easy to understand. Don't mention that you're "
     "summarizing the content.\n\n"
     "Website: {title} ({url})\n\n"
     "Content:\n{content}\n\n"
     "Summary (approximately {max_words} words):"),
])


class WebsiteSummary(BaseModel):
    url: str
    title: str
    summary: str
    word_count: int
    duration_ms: int


def count_words(text: str) -> int:
    return len(text.split())


class WebsiteSummarizer:
    """Scrape a studio website and condense it with the chat model"""

    def __init__(self, llm=None, scraper=scrape_url_async, max_words: int = MAX_WORDS,
                 timeout: float = SCRAPE_TIMEOUT_SECONDS):
        self._llm = llm
        self.scraper = scraper
        self.max_words = max_words
        self.timeout = timeout

    @property
    def llm(self):
        if self._llm is None:
            self._llm = get_llm(temperature=SUMMARY_TEMPERATURE, streaming=False)
        return self._llm

    async def summarize(self, url: str) -> WebsiteSummary:
        """
        Summarize the page at url

        Raises:
            ScrapeError: the page could not be fetched in time
        """
        start = time.perf_counter()
        full_url = ensure_protocol(url)
        logger.info("Starting website summarization", url=full_url, max_words=self.max_words)

        try:
            page = await asyncio.wait_for(self.scraper(full_url), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ScrapeError(f"Timed out fetching {full_url}") from e

        title = page.get("title") or "Unknown Title"
        response = await self.llm.ainvoke(summary_prompt.format_messages(
            max_words=self.max_words,
            title=title,
            url=full_url,
            content=format_scraped_page(page),
        ))
        summary = (response.content or "").strip()

        result = WebsiteSummary(
            url=full_url,
            title=title,
            summary=summary,
            word_count=count_words(summary),
            duration_ms=round((time.perf_counter() - start) * 1000),
        )
        logger.info(
            "Website summary generated",
            url=full_url,
            word_count=result.word_count,
            duration_ms=result.duration_ms,
        )
        return result
