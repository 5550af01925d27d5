"""Enhanced system prompt assembly"""
import time
from typing import Any, Dict, List, Optional

from ..prompts import enhance_prompt_with_tool_results
from ..tools.results import ToolResults
from ..utils.structured_logger import get_logger
from .content import DEFAULT_TRUNCATION_LIMITS, TruncationConfig, optimize_tool_results

logger = get_logger(__name__)

KNOWLEDGE_BASE = "Knowledge Base"
WEB_SCRAPER = "Web Scraper"
DEEP_SEARCH = "Deep Search"

TOOL_MESSAGE_IDS = {KNOWLEDGE_BASE: "kb", DEEP_SEARCH: "ds", WEB_SCRAPER: "ws"}

RECENT_MESSAGE_LIMIT = 10
RECENT_SESSION_MESSAGES = 6
RECENT_MESSAGE_PREVIEW = 150
DEFAULT_TEMPERATURE = 0.7


def _tool_content(tool: str, results: ToolResults) -> Optional[str]:
    return {
        KNOWLEDGE_BASE: results.rag_content,
        WEB_SCRAPER: results.web_scraper,
        DEEP_SEARCH: results.deep_search,
    }.get(tool)


def _resources_summary(tools_used: List[str], results: ToolResults) -> str:
    lines = []
    for tool in tools_used:
        content = _tool_content(tool, results)
        lines.append(f"- {tool}: {len(content)} characters" if content else f"- {tool}: No content")
    return "RESOURCES USED IN THIS RESPONSE:\n" + "\n".join(lines) + "\n\n"


def _resources_trailer(tools_used: List[str], results: ToolResults) -> str:
    descriptions = {
        KNOWLEDGE_BASE: "- Knowledge Base: Retrieved {n} characters of relevant information",
        WEB_SCRAPER: "- Web Scraper: Analyzed content with {n} characters",
        DEEP_SEARCH: "- Deep Search: Retrieved {n} characters of additional context through web search",
    }
    lines = []
    for tool in tools_used:
        content = _tool_content(tool, results)
        if content:
            lines.append(descriptions[tool].format(n=len(content)))
        else:
            lines.append(f"- {tool}: No content retrieved")

    return (
        '\n\nIMPORTANT: At the end of your response, you MUST include a section titled '
        '"--- Tools and Resources Used ---" that lists all the resources used to generate your '
        "response. Format it exactly like this:\n\n"
        "--- Tools and Resources Used ---\n"
        + "\n".join(lines)
        + "\n\nThis section is REQUIRED and must be included at the end of EVERY response."
    )


def _profile_block(profile) -> str:
    block = (
        "### PHOTOGRAPHY BUSINESS CONTEXT ###\n"
        "You are speaking with a photography studio with the following details:\n"
    )
    if profile.company_name:
        block += f"- Studio Name: {profile.company_name}\n"
    if profile.website_url:
        block += f"- Website: {profile.website_url}\n"
    if profile.location:
        block += f"- Location: {profile.location}\n"
    if profile.company_description:
        block += f"- Description: {profile.company_description}\n"
    if profile.website_summary:
        block += f"- {profile.website_summary}\n"
    block += (
        "\nPlease tailor your responses to be relevant to their photography business. "
        "This is a professional context where they are looking for assistance with their "
        "photography studio needs.\n\n"
    )
    return block


def _tools_used_label(tools_used: Any) -> str:
    if isinstance(tools_used, dict):
        return ", ".join(tools_used.keys())
    if isinstance(tools_used, (list, tuple)):
        return ", ".join(str(t) for t in tools_used)
    return str(tools_used)


def _recent_conversation_block(messages: list) -> str:
    """Last messages of the most recent session, oldest first"""
    if not messages:
        return ""

    # messages arrive newest first, so the first session seen is the most recent one
    latest_session = messages[0].session_id
    session_messages = sorted(
        (m for m in messages if m.session_id == latest_session),
        key=lambda m: m.created_at,
    )[-RECENT_SESSION_MESSAGES:]

    block = "### RECENT CONVERSATION CONTEXT ###\n"
    for msg in session_messages:
        content = msg.content
        if len(content) > RECENT_MESSAGE_PREVIEW:
            content = content[:RECENT_MESSAGE_PREVIEW] + "..."
        block += f"{'User' if msg.role == 'user' else 'Assistant'}: {content}\n"
        if msg.role == "assistant" and msg.tools_used:
            block += f"(Used: {_tools_used_label(msg.tools_used)})\n"
    return block + "\n"


async def build_enhanced_system_prompt(
    base_prompt: str,
    tool_results: ToolResults,
    tools_used: List[str],
    user_id: Optional[str] = None,
    store=None,
    query: Optional[str] = None,
    truncation: TruncationConfig = DEFAULT_TRUNCATION_LIMITS,
) -> str:
    """
    Build the system prompt for one turn

    Order: resources summary, studio profile, recent conversation, base prompt,
    tool sections (knowledge base, web scraper, deep search), resources trailer.

    Args:
        base_prompt: Agent system prompt
        tool_results: Raw tool outputs
        tools_used: Display names of the tools that ran ("Knowledge Base", ...)
        user_id: Adds profile and history context when given
        store: Object with async get_user_profile / get_recent_user_messages
        query: User message, used to condense long tool output
        truncation: Character budgets

    Returns:
        The assembled prompt; identical inputs give identical output
    """
    optimized = optimize_tool_results(tool_results, truncation, query)

    prompt = _resources_summary(tools_used, optimized)

    if user_id and store is not None:
        try:
            profile = await store.get_user_profile(user_id)
            if profile:
                prompt += _profile_block(profile)
                logger.info("Added photography business profile to system prompt")

            recent = await store.get_recent_user_messages(user_id, RECENT_MESSAGE_LIMIT)
            if recent:
                prompt += _recent_conversation_block(recent)
        except Exception as e:
            logger.error("Error fetching user data for prompt enhancement", error=str(e))

    prompt += base_prompt
    prompt = enhance_prompt_with_tool_results(prompt, optimized)
    prompt += _resources_trailer(tools_used, optimized)

    logger.info(
        "Built enhanced system prompt",
        prompt_length=len(prompt),
        tools_used=tools_used,
        includes_user_profile=bool(user_id),
    )
    return prompt


async def build_ai_messages(
    base_prompt: str,
    tool_results: ToolResults,
    tools_used: List[str],
    user_messages: List[Dict[str, Any]],
    user_id: Optional[str] = None,
    store=None,
) -> List[Dict[str, Any]]:
    """System message with the enhanced prompt, then the user messages, then tool result messages"""
    system_prompt = await build_enhanced_system_prompt(base_prompt, tool_results, tools_used, user_id, store)
    stamp = str(int(time.time() * 1000))

    system_message = {"id": f"system-{stamp}", "role": "system", "content": system_prompt}

    tool_messages = [
        {
            "id": f"tool-{TOOL_MESSAGE_IDS[result.source]}-{stamp}",
            "role": "assistant",
            "content": f"[{result.source} Results]\n{result.content}",
        }
        for result in tool_results.entries()
        if result.source in tools_used
    ]

    logger.debug(
        "Built AI message array",
        system_prompt_length=len(system_prompt),
        tool_message_count=len(tool_messages),
        user_message_count=len(user_messages),
    )
    return [system_message, *user_messages, *tool_messages]


async def build_ai_request(
    base_prompt: str,
    tool_results: ToolResults,
    tools_used: List[str],
    messages: List[Dict[str, Any]],
    model_name: str,
    user_id: Optional[str] = None,
    store=None,
    tools: Optional[list] = None,
) -> Dict[str, Any]:
    """Complete chat-completions request body"""
    ai_messages = await build_ai_messages(base_prompt, tool_results, tools_used, messages, user_id, store)
    return {
        "messages": ai_messages,
        "model": model_name,
        "tools": tools or None,
        "temperature": DEFAULT_TEMPERATURE,
    }
