"""Perplexity chat-completions client used by deep search"""
import asyncio
import time
from typing import Optional

import requests
from pydantic import BaseModel

from ..config import config
from ..errors import DeepSearchError
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

RESEARCH_SYSTEM_PROMPT = (
    "You are a deep research agent for an agent team. Please bring back the most comprehensive "
    "and relevant context in your searches. Focus on factual information, include specific details, "
    "statistics, and cite sources when possible. Format your response in a structured way that "
    "will be easy for other agents to parse and utilize."
)


class PerplexitySearchResult(BaseModel):
    content: str
    model: str
    citations: list = []
    timing_ms: int = 0


class PerplexityClient:
    """Thin wrapper around the Perplexity API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: int = 60,
    ):
        self.api_key = api_key if api_key is not None else config.PERPLEXITY_API_KEY
        self.model = model or config.PERPLEXITY_MODEL
        self.api_url = api_url or config.PERPLEXITY_API_URL
        self.timeout = timeout

    def _search(self, query: str) -> PerplexitySearchResult:
        if not self.api_key:
            raise DeepSearchError("PERPLEXITY_API_KEY is not set")

        start = time.perf_counter()
        try:
            response = requests.post(
                self.api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": RESEARCH_SYSTEM_PROMPT},
                        {"role": "user", "content": query},
                    ],
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise DeepSearchError("Perplexity request timed out") from e
        except requests.exceptions.RequestException as e:
            raise DeepSearchError(f"Perplexity request failed: {e}") from e
        except ValueError as e:
            raise DeepSearchError("Perplexity returned invalid JSON") from e

        choices = data.get("choices") or []
        content = (choices[0].get("message") or {}).get("content") if choices else None
        timing_ms = round((time.perf_counter() - start) * 1000)

        logger.info(
            "Perplexity search completed",
            model=data.get("model", self.model),
            response_length=len(content or ""),
            duration_ms=timing_ms,
        )

        return PerplexitySearchResult(
            content=content or "No results found",
            model=data.get("model", self.model),
            citations=data.get("citations") or [],
            timing_ms=timing_ms,
        )

    async def search(self, query: str) -> PerplexitySearchResult:
        """
        Run a research query

        Raises:
            DeepSearchError: missing key, HTTP failure or malformed response
        """
        return await asyncio.to_thread(self._search, query)
