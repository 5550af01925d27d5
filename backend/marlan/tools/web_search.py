"""Search tools: SerpAPI web search and the combined web + deep search"""
import asyncio
from typing import Any, Dict, List

import requests
from pydantic import BaseModel, Field

from ..config import config
from ..errors import ToolExecutionError
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

SERPAPI_URL = "https://serpapi.com/search"
MAX_RESULTS = 5


class SearchInput(BaseModel):
    """Search tool arguments"""
    query: str = Field(description="The search query to find information about.")


def search_web(query: str, num_results: int = MAX_RESULTS) -> List[Dict[str, str]]:
    """
    Google search through SerpAPI (blocking)

    Args:
        query: Search keywords
        num_results: Number of results to keep

    Returns:
        [{"title", "link", "snippet"}, ...]

    Raises:
        ToolExecutionError: missing API key or failed request
    """
    api_key = config.SERPAPI_API_KEY
    if not api_key:
        raise ToolExecutionError("Web search is unavailable: SERPAPI_API_KEY is not set")

    params = {
        "q": query,
        "api_key": api_key,
        "num": num_results,
        "engine": "google",
        "hl": "en",
        "gl": "us",
    }

    try:
        response = requests.get(SERPAPI_URL, params=params, timeout=10)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.Timeout as e:
        raise ToolExecutionError("Web search timed out") from e
    except requests.exceptions.RequestException as e:
        raise ToolExecutionError(f"Web search request failed: {e}") from e

    results = []
    for item in data.get("organic_results", [])[:num_results]:
        results.append({
            "title": item.get("title", "No title"),
            "link": item.get("link", ""),
            "snippet": item.get("snippet", ""),
        })
    return results


async def web_search(query: str) -> Dict[str, Any]:
    results = await asyncio.to_thread(search_web, query)
    logger.info("Web search completed", query=query, result_count=len(results))
    return {
        "success": True,
        "message": f'Found {len(results)} results for "{query}"',
        "results": results,
        "urls": [r["link"] for r in results if r["link"]],
    }


def _succeeded(outcome: Any) -> bool:
    if isinstance(outcome, BaseException):
        return False
    return not (isinstance(outcome, dict) and outcome.get("error"))


async def combined_search(query: str, web_search_fn, deep_search_fn) -> Dict[str, Any]:
    """
    Run web search and deep search concurrently

    A failure of either side is reported, never raised.

    Args:
        query: Search query
        web_search_fn: async (query) -> dict
        deep_search_fn: async (query) -> dict or str
    """
    web_outcome, deep_outcome = await asyncio.gather(
        web_search_fn(query),
        deep_search_fn(query),
        return_exceptions=True,
    )

    web_ok = _succeeded(web_outcome)
    deep_ok = _succeeded(deep_outcome)

    if isinstance(web_outcome, BaseException):
        web_outcome = {"error": True, "message": f"Web search failed: {web_outcome}", "results": []}
    if isinstance(deep_outcome, BaseException):
        deep_outcome = {"error": True, "message": f"Deep search failed: {deep_outcome}", "content": ""}

    logger.info("Combined search completed", query=query, web_search_success=web_ok, deep_search_success=deep_ok)

    return {
        "webSearch": web_outcome,
        "deepSearch": deep_outcome,
        "combinedSummary": (
            f'Combined search results for "{query}". '
            f"Web search {'succeeded' if web_ok else 'failed'}. "
            f"Deep search {'succeeded' if deep_ok else 'failed'}."
        ),
    }
