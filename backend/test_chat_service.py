"""Tests for the chat turn pipeline"""
import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from marlan.agents import build_agent_router
from marlan.chat import ChatService, UrlScrapingMiddleware
from marlan.chat.service import generate_title
from marlan.db import database
from marlan.db.models import ChatSessionCreate
from marlan.errors import DeepSearchError, SessionNotFound
from marlan.services.perplexity import PerplexitySearchResult
from marlan.tools.deep_search import DeepSearchService


class FakeScraper:
    def __init__(self):
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        return {"url": url, "title": "Harbor Light", "description": "", "content": "Packages from $2,400"}


class FakePerplexity:
    def __init__(self, error=None):
        self.error = error
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return PerplexitySearchResult(content="Average wedding cost is $2,800.", model="sonar")


def _service(reply="Here is my advice.", perplexity=None, scraper=None):
    router = build_agent_router(llm=FakeListChatModel(responses=[reply]))
    return ChatService(
        router,
        url_scraper=UrlScrapingMiddleware(scraper=scraper or FakeScraper()),
        deep_search=DeepSearchService(client=perplexity or FakePerplexity()),
    )


def test_generate_title():
    assert generate_title("  Pricing   my weddings ") == "Pricing my weddings"
    assert generate_title("") == "New Conversation"
    long = "How should I structure wedding photography packages for the coming season in Maine"
    title = generate_title(long)
    assert title.endswith("...")
    assert len(title) <= 53
    assert long.startswith(title[:-3])


def test_handle_message_persists_both_messages_and_titles_session(db_path):
    service = _service("Start with three tiers.")

    async def scenario():
        result = await service.handle_message("user-1", "s1", "How should I price wedding packages?")
        messages = await database.list_messages("s1")
        session = await database.get_session("s1", "user-1")
        return result, messages, session

    result, messages, session = asyncio.run(scenario())

    assert result.message == "Start with three tiers."
    assert result.agent_id == "default"
    assert [(m.role, m.content) for m in messages] == [
        ("user", "How should I price wedding packages?"),
        ("assistant", "Start with three tiers."),
    ]
    assert session.title == "How should I price wedding packages?"
    assert session.agent_id == "default"


def test_title_is_only_set_on_first_message(db_path):
    service = _service()

    async def scenario():
        await service.handle_message("user-1", "s1", "First question")
        await service.handle_message("user-1", "s1", "Second question")
        return await database.get_session("s1", "user-1")

    assert asyncio.run(scenario()).title == "First question"


def test_explicit_agent_is_recorded_on_session(db_path):
    service = _service("Quiz time!")

    async def scenario():
        result = await service.handle_message("user-1", "s1", "Make something fun", agent_id="quiz")
        return result, await database.get_session("s1", "user-1")

    result, session = asyncio.run(scenario())

    assert result.agent_id == "quiz"
    assert session.agent_id == "quiz"


def test_auto_routed_agent_does_not_stick_to_the_session(db_path):
    service = _service()

    async def scenario():
        first = await service.handle_message("user-1", "s1", "Write copy for my landing page tagline and slogan")
        second = await service.handle_message("user-1", "s1", "What lens should I use for portraits?")
        return first, second, await database.get_session("s1", "user-1")

    first, second, session = asyncio.run(scenario())

    assert first.agent_id == "copywriting"
    assert second.agent_id == "default"
    assert session.agent_id == "default"


def test_history_is_passed_to_the_next_turn(db_path):
    service = _service()

    async def scenario():
        await service.handle_message("user-1", "s1", "My studio is in Portland")
        turn = await service.prepare_turn("user-1", "s1", "Where is my studio?")
        return turn

    turn = asyncio.run(scenario())

    assert [m.role for m in turn.context.history] == ["user", "assistant"]
    assert turn.context.history[0].content == "My studio is in Portland"
    assert turn.is_first_message is False
    assert turn.context.metadata["current_agent_id"] == "default"


def test_tools_used_reflect_scraping_and_deep_search(db_path):
    scraper = FakeScraper()
    perplexity = FakePerplexity()
    service = _service(perplexity=perplexity, scraper=scraper)

    async def scenario():
        result = await service.handle_message(
            "user-1", "s1", "Compare my prices with https://harborlight.com", deep_search_enabled=True
        )
        messages = await database.list_messages("s1")
        return result, messages

    result, messages = asyncio.run(scenario())

    assert result.tools_used == ["Web Scraper", "Deep Search"]
    assert scraper.calls == ["https://harborlight.com"]
    assert len(perplexity.queries) == 1
    assert messages[-1].tools_used == ["Web Scraper", "Deep Search"]


def test_deep_search_follows_session_flag(db_path):
    perplexity = FakePerplexity()
    service = _service(perplexity=perplexity)

    async def scenario():
        await database.create_session("user-1", ChatSessionCreate(id="s1", deep_search_enabled=True))
        return await service.handle_message("user-1", "s1", "Latest trends in newborn photography")

    result = asyncio.run(scenario())

    assert "Deep Search" in result.tools_used
    assert len(perplexity.queries) == 1


def test_deep_search_failure_is_skipped(db_path):
    service = _service(perplexity=FakePerplexity(error=DeepSearchError("timed out")))

    result = asyncio.run(
        service.handle_message("user-1", "s1", "Latest trends in newborn photography", deep_search_enabled=True)
    )

    assert result.tools_used == []
    assert result.message == "Here is my advice."


class LockedStore:
    async def get(self, key):
        raise RuntimeError("database is locked")

    async def set(self, key, value, ex=None):
        raise RuntimeError("database is locked")


def test_deep_search_cache_errors_do_not_fail_the_turn(db_path):
    perplexity = FakePerplexity()
    router = build_agent_router(llm=FakeListChatModel(responses=["Here is my advice."]))
    service = ChatService(
        router,
        url_scraper=UrlScrapingMiddleware(scraper=FakeScraper()),
        deep_search=DeepSearchService(client=perplexity, cache=LockedStore()),
    )

    result = asyncio.run(
        service.handle_message("user-1", "s1", "Latest trends in newborn photography", deep_search_enabled=True)
    )

    assert result.tools_used == ["Deep Search"]
    assert len(perplexity.queries) == 1


def test_knowledge_base_results_are_used(db_path):
    service = _service()

    async def scenario():
        await database.add_document("Wedding packages include engagement sessions and albums.")
        return await service.handle_message("user-1", "s1", "What do wedding packages include?")

    assert asyncio.run(scenario()).tools_used == ["Knowledge Base"]


def test_foreign_session_is_rejected(db_path):
    service = _service()

    async def scenario():
        await database.create_session("owner", ChatSessionCreate(id="s1"))
        with pytest.raises(SessionNotFound):
            await service.handle_message("intruder", "s1", "hello")
        return await database.count_messages("s1")

    assert asyncio.run(scenario()) == 0


def test_stream_message_event_order(db_path):
    service = _service("Soft light")

    async def collect():
        return [event async for event in service.stream_message("user-1", "s1", "Lighting tips?")]

    events = asyncio.run(collect())
    types = [e["type"] for e in events]

    assert types[0] == "start"
    assert types[1] == "agent"
    assert types[-1] == "done"
    assert set(types[2:-1]) == {"token"}
    assert "".join(e["content"] for e in events[2:-1]) == "Soft light"
    assert events[-1]["message"] == "Soft light"
    assert events[-1]["session_id"] == "s1"


def test_stream_message_reports_errors(db_path):
    service = _service()

    async def collect():
        await database.create_session("owner", ChatSessionCreate(id="s1"))
        return [event async for event in service.stream_message("intruder", "s1", "hello")]

    events = asyncio.run(collect())

    assert [e["type"] for e in events] == ["start", "error"]
    assert "s1" in events[1]["message"]
