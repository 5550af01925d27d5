"""Tests for the enhanced system prompt"""
import asyncio
from datetime import datetime, timedelta

from marlan.chat.prompt_builder import (
    DEEP_SEARCH,
    KNOWLEDGE_BASE,
    WEB_SCRAPER,
    build_ai_messages,
    build_ai_request,
    build_enhanced_system_prompt,
)
from marlan.db.models import ChatMessage, UserProfile
from marlan.prompts import DEEP_SEARCH_BANNER, KNOWLEDGE_BASE_BANNER, WEB_SCRAPER_BANNER
from marlan.tools.results import ToolResults

BASE = "You are a helpful studio assistant."
ALL_TOOLS = [KNOWLEDGE_BASE, WEB_SCRAPER, DEEP_SEARCH]


def _message(session_id, role, content, minutes_ago, tools_used=None):
    return ChatMessage(
        id=f"{session_id}-{minutes_ago}",
        session_id=session_id,
        user_id="user-1",
        role=role,
        content=content,
        tools_used=tools_used,
        created_at=datetime(2024, 5, 1, 12, 0) - timedelta(minutes=minutes_ago),
    )


class FakeStore:
    def __init__(self, profile=None, messages=None):
        self.profile = profile
        self.messages = messages or []

    async def get_user_profile(self, user_id):
        return self.profile

    async def get_recent_user_messages(self, user_id, limit=10):
        return self.messages[:limit]


class BrokenStore:
    async def get_user_profile(self, user_id):
        raise RuntimeError("database is locked")

    async def get_recent_user_messages(self, user_id, limit=10):
        raise RuntimeError("database is locked")


def _results():
    return ToolResults(
        rag_content="Our wedding packages start at $2,400.",
        web_scraper="# SCRAPED CONTENT FROM URL: https://harborlight.example",
        deep_search="Industry average for wedding photography is $2,800.",
    )


def test_prompt_is_deterministic():
    store = FakeStore(profile=UserProfile(user_id="user-1", company_name="Harbor Light"))

    async def build():
        return await build_enhanced_system_prompt(BASE, _results(), ALL_TOOLS, "user-1", store)

    assert asyncio.run(build()) == asyncio.run(build())


def test_tool_sections_follow_priority_order():
    prompt = asyncio.run(build_enhanced_system_prompt(BASE, _results(), ALL_TOOLS))

    kb = prompt.index(KNOWLEDGE_BASE_BANNER)
    ws = prompt.index(WEB_SCRAPER_BANNER)
    ds = prompt.index(DEEP_SEARCH_BANNER)
    assert prompt.index(BASE) < kb < ws < ds


def test_prompt_starts_with_summary_and_ends_with_trailer():
    results = ToolResults(rag_content="abc")
    prompt = asyncio.run(build_enhanced_system_prompt(BASE, results, [KNOWLEDGE_BASE, DEEP_SEARCH]))

    assert prompt.startswith("RESOURCES USED IN THIS RESPONSE:\n- Knowledge Base: 3 characters\n- Deep Search: No content")
    assert "--- Tools and Resources Used ---\n- Knowledge Base: Retrieved 3 characters of relevant information" in prompt
    assert "- Deep Search: No content retrieved" in prompt
    assert prompt.endswith("This section is REQUIRED and must be included at the end of EVERY response.")


def test_profile_block_is_included_for_known_user():
    profile = UserProfile(
        user_id="user-1",
        company_name="Harbor Light Photography",
        website_url="https://harborlight.example",
        location="Portland, ME",
    )
    prompt = asyncio.run(build_enhanced_system_prompt(BASE, ToolResults(), [], "user-1", FakeStore(profile)))

    assert "### PHOTOGRAPHY BUSINESS CONTEXT ###" in prompt
    assert "- Studio Name: Harbor Light Photography" in prompt
    assert "- Location: Portland, ME" in prompt
    assert prompt.index("### PHOTOGRAPHY BUSINESS CONTEXT ###") < prompt.index(BASE)


def test_recent_conversation_uses_latest_session_only():
    long_reply = "A" * 200
    messages = [
        _message("s2", "assistant", long_reply, 1, tools_used=["Knowledge Base"]),
        _message("s2", "user", "How should I price albums?", 2),
        _message("s1", "user", "Old question from another session", 30),
    ]
    prompt = asyncio.run(build_enhanced_system_prompt(BASE, ToolResults(), [], "user-1", FakeStore(messages=messages)))

    block = prompt.split("### RECENT CONVERSATION CONTEXT ###\n")[1]
    assert block.startswith("User: How should I price albums?\nAssistant: " + "A" * 150 + "...\n(Used: Knowledge Base)\n")
    assert "Old question" not in prompt


def test_store_failures_are_skipped():
    prompt = asyncio.run(build_enhanced_system_prompt(BASE, ToolResults(), [], "user-1", BrokenStore()))
    assert BASE in prompt
    assert "PHOTOGRAPHY BUSINESS CONTEXT" not in prompt


def test_ai_messages_wrap_prompt_and_tool_results():
    user_messages = [{"role": "user", "content": "Help me price weddings"}]
    messages = asyncio.run(build_ai_messages(BASE, _results(), ALL_TOOLS, user_messages))

    assert messages[0]["role"] == "system"
    assert messages[0]["id"].startswith("system-")
    assert messages[1] == user_messages[0]
    tool_ids = [m["id"].rsplit("-", 1)[0] for m in messages[2:]]
    assert tool_ids == ["tool-kb", "tool-ds", "tool-ws"]
    assert messages[2]["content"].startswith("[Knowledge Base Results]\n")


def test_ai_request_sets_model_and_temperature():
    request = asyncio.run(build_ai_request(BASE, ToolResults(), [], [], "gpt-4o"))
    assert request["model"] == "gpt-4o"
    assert request["temperature"] == 0.7
    assert request["tools"] is None
    assert request["messages"][0]["role"] == "system"
