"""Tests for the tool layer"""
import asyncio

import pytest

from marlan.config import config
from marlan.db import SqliteKeyValueStore
from marlan.db import database
from marlan.errors import DeepSearchError
from marlan.events import EventsManager
from marlan.services.perplexity import PerplexitySearchResult
from marlan.tools.common import EchoInput, create_basic_tool, date_time, echo_tool
from marlan.tools.deep_search import (
    DEEP_SEARCH_DISABLED_MESSAGE,
    DeepSearchService,
    cache_key,
    deep_search,
    format_search_query,
)
from marlan.tools.knowledge_base import NO_RESULTS_MESSAGE, knowledge_base
from marlan.tools.registry import ToolContext, ToolKind, ToolRegistry, create_default_registry
from marlan.tools.url_utils import ensure_protocol, extract_urls, is_domain_like
from marlan.tools.web_scraper import MAX_CONTENT_LENGTH, parse_html
from marlan.tools.web_search import combined_search


class FakePerplexity:
    def __init__(self, content="Research notes", error=None):
        self.content = content
        self.error = error
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return PerplexitySearchResult(content=self.content, model="sonar", citations=["https://a.example"])


# ---------------------------------------------------------------------------
# URL detection
# ---------------------------------------------------------------------------

def test_extract_urls_with_scheme_and_www():
    assert extract_urls("See https://a.com and www.b.org") == ["https://a.com", "www.b.org"]


def test_extract_urls_strips_trailing_punctuation_and_duplicates():
    text = "Compare https://harborlight.com/pricing. Then https://harborlight.com/pricing!"
    assert extract_urls(text) == ["https://harborlight.com/pricing"]


def test_extract_urls_falls_back_to_domains():
    assert extract_urls("check out harborlight.com today") == ["harborlight.com"]


def test_extract_urls_ignores_abbreviations_and_numbers():
    assert extract_urls("Use soft light, e.g. a window") == []
    assert extract_urls("Lens version 3.14159 is out") == []
    assert extract_urls("") == []


def test_domain_helpers():
    assert is_domain_like("sub.domain.co.uk")
    assert not is_domain_like("i.e.")
    assert ensure_protocol("www.b.org") == "https://www.b.org"
    assert ensure_protocol("http://a.com") == "http://a.com"


# ---------------------------------------------------------------------------
# Scraper parsing
# ---------------------------------------------------------------------------

def test_parse_html_extracts_title_description_and_article():
    body = "Wedding photography across Maine. " * 20
    html = f"""
    <html><head><title> Harbor Light </title>
    <meta name="description" content="Coastal wedding photographer"></head>
    <body><nav>Home About</nav><article>{body}</article><script>var x = 1;</script></body></html>
    """
    page = parse_html(html, "https://harborlight.example")

    assert page["url"] == "https://harborlight.example"
    assert page["title"] == "Harbor Light"
    assert page["description"] == "Coastal wedding photographer"
    assert page["content"].startswith("Wedding photography across Maine.")
    assert "var x" not in page["content"]
    assert "Home About" not in page["content"]


def test_parse_html_caps_content():
    html = f"<html><body><main>{'word ' * 3000}</main></body></html>"
    page = parse_html(html, "https://example.com")
    assert len(page["content"]) == MAX_CONTENT_LENGTH
    assert page["title"] == "No title found"


# ---------------------------------------------------------------------------
# Basic tools
# ---------------------------------------------------------------------------

def test_tool_errors_are_returned_not_raised():
    async def explode(message: str):
        raise ValueError(f"cannot handle {message}")

    tool = create_basic_tool("explode", "Always fails", EchoInput, explode)

    assert asyncio.run(tool.ainvoke({"message": "x"})) == {"error": True, "message": "cannot handle x"}


def test_echo_and_date_time():
    assert asyncio.run(echo_tool.ainvoke({"message": "hi"})) == {"message": "hi"}

    result = asyncio.run(date_time("America/New_York"))
    assert result["timezone"] == "America/New_York"
    assert result["iso"]


# ---------------------------------------------------------------------------
# Deep search
# ---------------------------------------------------------------------------

def test_format_search_query():
    assert format_search_query("cats") == "cats - provide comprehensive information"
    assert format_search_query("what is bokeh in portraits") == "what is bokeh in portraits?"
    assert format_search_query("Explain wedding photography trends.") == "Explain wedding photography trends."
    assert format_search_query("Wedding photography pricing trends") == "Wedding photography pricing trends"


def test_cache_key_is_case_insensitive():
    assert cache_key("Bokeh") == cache_key("bokeh")
    assert cache_key("bokeh").startswith("deepsearch:")


def test_deep_search_refuses_when_disabled():
    client = FakePerplexity()
    service = DeepSearchService(client=client)

    assert asyncio.run(deep_search("trends", service, enabled=False)) == DEEP_SEARCH_DISABLED_MESSAGE
    assert client.queries == []


def test_deep_search_caches_results_and_publishes_events(db_path):
    client = FakePerplexity("Wedding bookings peak in June.")
    events = EventsManager()
    service = DeepSearchService(client=client, cache=SqliteKeyValueStore(), events=events)

    async def scenario():
        connection = events.connect("user-1")
        first = await deep_search("wedding booking seasonality", service, True, "user-1")
        second = await deep_search("wedding booking seasonality", service, True, "user-1")
        received = []
        while not connection.queue.empty():
            received.append(connection.queue.get_nowait())
        return first, second, received

    first, second, received = asyncio.run(scenario())

    assert first == second == "Wedding bookings peak in June."
    assert len(client.queries) == 1
    assert [e["status"] for e in received] == ["started", "completed"]
    assert all(e["type"] == "deepSearch" for e in received)


def test_deep_search_failure_is_raised_and_published():
    client = FakePerplexity(error=DeepSearchError("Perplexity request timed out"))
    events = EventsManager()
    service = DeepSearchService(client=client, events=events)

    async def scenario():
        connection = events.connect("user-1")
        with pytest.raises(DeepSearchError):
            await service.search("wedding trends", user_id="user-1")
        return [connection.queue.get_nowait()["status"] for _ in range(connection.queue.qsize())]

    assert asyncio.run(scenario()) == ["started", "failed"]


class LockedStore:
    async def get(self, key):
        raise RuntimeError("database is locked")

    async def set(self, key, value, ex=None):
        raise RuntimeError("database is locked")


def test_deep_search_treats_cache_errors_as_misses():
    client = FakePerplexity("Newborn sessions run three hours.")
    service = DeepSearchService(client=client, cache=LockedStore())

    result = asyncio.run(service.search("newborn session length"))

    assert result.content == "Newborn sessions run three hours."
    assert len(client.queries) == 1


# ---------------------------------------------------------------------------
# Combined search
# ---------------------------------------------------------------------------

def test_combined_search_reports_each_side():
    async def failing_web(query):
        raise RuntimeError("serpapi down")

    async def deep(query):
        return "deep results"

    result = asyncio.run(combined_search("pricing", failing_web, deep))

    assert result["webSearch"]["error"] is True
    assert "serpapi down" in result["webSearch"]["message"]
    assert result["deepSearch"] == "deep results"
    assert result["combinedSummary"].endswith("Web search failed. Deep search succeeded.")


def test_combined_search_treats_error_results_as_failures():
    async def web(query):
        return {"success": True, "results": []}

    async def deep(query):
        return {"error": True, "message": "disabled"}

    result = asyncio.run(combined_search("pricing", web, deep))
    assert result["combinedSummary"].endswith("Web search succeeded. Deep search failed.")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_default_registry_covers_every_tool_kind():
    registry = create_default_registry(DeepSearchService(client=FakePerplexity()))
    assert set(registry.kinds) == set(ToolKind)

    tools = registry.tools_for([ToolKind.ECHO, ToolKind.DEEP_SEARCH], ToolContext())
    assert [t.name for t in tools] == ["echo", "deepSearch"]


def test_registry_gates_deep_search_per_request():
    client = FakePerplexity("fresh research")
    registry = create_default_registry(DeepSearchService(client=client))

    disabled = registry.get(ToolKind.DEEP_SEARCH, ToolContext(deep_search_enabled=False))
    enabled = registry.get(ToolKind.DEEP_SEARCH, ToolContext(deep_search_enabled=True))

    assert asyncio.run(disabled.ainvoke({"search_term": "trends"})) == DEEP_SEARCH_DISABLED_MESSAGE
    assert asyncio.run(enabled.ainvoke({"search_term": "trends"})) == "fresh research"
    assert len(client.queries) == 1


def test_combined_search_tool_without_keys_or_deep_search(monkeypatch):
    monkeypatch.setattr(config, "SERPAPI_API_KEY", None)
    registry = create_default_registry(DeepSearchService(client=FakePerplexity()))
    tool = registry.get(ToolKind.COMBINED_SEARCH, ToolContext(deep_search_enabled=False))

    result = asyncio.run(tool.ainvoke({"query": "pricing"}))

    assert result["deepSearch"] == {"error": True, "message": DEEP_SEARCH_DISABLED_MESSAGE}
    assert result["combinedSummary"].endswith("Web search failed. Deep search failed.")


def test_registry_skips_unregistered_kinds():
    assert ToolRegistry().tools_for([ToolKind.ECHO]) == []
    with pytest.raises(KeyError):
        ToolRegistry().get(ToolKind.ECHO)


# ---------------------------------------------------------------------------
# Knowledge base
# ---------------------------------------------------------------------------

def test_knowledge_base_formats_matching_documents(db_path):
    async def scenario():
        await database.add_document(
            "Wedding packages include engagement sessions and albums.", {"title": "Wedding guide"}
        )
        await database.add_document("Parking is available behind the studio.")
        return await knowledge_base("wedding packages albums"), await knowledge_base("drone licensing")

    found, missing = asyncio.run(scenario())

    assert found.startswith("Document 1 [Similarity: 1.00]: Wedding guide\nWedding packages include")
    assert "Parking" not in found
    assert missing == NO_RESULTS_MESSAGE
