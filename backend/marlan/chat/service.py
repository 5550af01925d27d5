"""Chat service: one conversation turn from user message to persisted reply"""
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from ..agents.router import AgentRouter
from ..agents.types import AgentContext, AgentMessage, AgentResponse, create_agent_context
from ..db import database
from ..db.database import DEFAULT_TITLE, PromptContextStore
from ..db.models import ChatSessionUpdate
from ..errors import DeepSearchError, SessionNotFound
from ..tools.deep_search import DeepSearchService
from ..tools.knowledge_base import NO_RESULTS_MESSAGE, knowledge_base
from ..tools.results import ToolResults
from ..utils.structured_logger import get_logger
from .prompt_builder import DEEP_SEARCH, KNOWLEDGE_BASE, WEB_SCRAPER, build_enhanced_system_prompt
from .url_scraping import UrlScrapingMiddleware

logger = get_logger(__name__)

HISTORY_LIMIT = 20
TITLE_MAX_LENGTH = 50


def generate_title(message: str) -> str:
    """Session title from the first user message, cut at a word boundary"""
    text = " ".join(message.split())
    if not text:
        return DEFAULT_TITLE
    if len(text) <= TITLE_MAX_LENGTH:
        return text
    cut = text[:TITLE_MAX_LENGTH].rsplit(" ", 1)[0]
    return f"{cut or text[:TITLE_MAX_LENGTH]}..."


@dataclass
class ChatTurn:
    """State prepared for one turn"""
    user_id: str
    session_id: str
    message: str
    agent_type: str
    deep_search_enabled: bool
    context: AgentContext
    tools_used: List[str] = field(default_factory=list)
    is_first_message: bool = False


@dataclass
class ChatResult:
    session_id: str
    agent_id: str
    message: str
    tools_used: List[str]
    tool_calls: Optional[List[Dict[str, Any]]]
    processing_time_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "agent_id": self.agent_id,
            "message": self.message,
            "tools_used": self.tools_used,
            "tool_calls": self.tool_calls,
            "processing_time_ms": self.processing_time_ms,
        }


class ChatService:
    """
    Request pipeline shared by the agent chat and widget endpoints

    persist user message -> pick agent -> gather tool results -> build prompt
    -> route to agent -> persist assistant reply
    """

    def __init__(
        self,
        router: AgentRouter,
        url_scraper: Optional[UrlScrapingMiddleware] = None,
        deep_search: Optional[DeepSearchService] = None,
        store=None,
    ):
        self.router = router
        self.url_scraper = url_scraper or UrlScrapingMiddleware()
        self.deep_search = deep_search or DeepSearchService()
        self.store = store or PromptContextStore()

    async def gather_tool_results(self, message: str, user_id: str, deep_search_enabled: bool):
        """
        Run the pre-turn tools; each failure is logged and skipped

        Returns:
            (ToolResults, tools_used display names)
        """
        results = ToolResults()
        tools_used: List[str] = []

        try:
            rag = await knowledge_base(message)
            if rag and rag != NO_RESULTS_MESSAGE:
                results.rag_content = rag
                tools_used.append(KNOWLEDGE_BASE)
        except Exception as e:
            logger.error("Knowledge base lookup failed", error=str(e))

        try:
            scraped = await self.url_scraper.scrape_text(message)
            if scraped:
                results.web_scraper = scraped
                tools_used.append(WEB_SCRAPER)
        except Exception as e:
            logger.error("URL scraping failed", error=str(e))

        if deep_search_enabled:
            try:
                research = await self.deep_search.search(message, user_id=user_id)
                results.deep_search = research.content
                tools_used.append(DEEP_SEARCH)
            except DeepSearchError as e:
                logger.warning("Deep search unavailable for this turn", error=str(e))
            except Exception as e:
                logger.error("Deep search failed", error=str(e))

        return results, tools_used

    async def prepare_turn(
        self,
        user_id: str,
        session_id: str,
        message: str,
        agent_id: Optional[str] = None,
        deep_search_enabled: Optional[bool] = None,
    ) -> ChatTurn:
        """
        Raises:
            SessionNotFound: the session belongs to another user
        """
        session = await database.ensure_session_exists(
            session_id,
            user_id,
            agent_id=agent_id or "default",
            deep_search_enabled=bool(deep_search_enabled),
        )
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")

        deep_enabled = session.deep_search_enabled if deep_search_enabled is None else deep_search_enabled

        history = await database.list_messages(session_id, limit=HISTORY_LIMIT)
        await database.save_message(session_id, user_id, "user", message)

        # only an explicit selection pins the agent; everything else is re-routed per turn
        agent_type = self.router.resolve_agent(agent_id or "default", message)

        tool_results, tools_used = await self.gather_tool_results(message, user_id, deep_enabled)

        base_prompt = self.router.get_system_prompt(agent_type, deep_enabled)
        system_prompt = await build_enhanced_system_prompt(
            base_prompt, tool_results, tools_used, user_id=user_id, store=self.store, query=message
        )

        context = create_agent_context(
            [
                AgentMessage(role=m.role, content=m.content, created_at=m.created_at)
                for m in history
                if m.role in ("user", "assistant")
            ],
            metadata={
                "current_agent_id": session.agent_id,
                "system_prompt": system_prompt,
                "user_id": user_id,
                "deep_search_enabled": deep_enabled,
            },
            session_id=session_id,
        )

        logger.info(
            "Turn prepared",
            agent=agent_type,
            tools_used=tools_used,
            history_length=len(history),
            deep_search_enabled=deep_enabled,
        )
        return ChatTurn(
            user_id=user_id,
            session_id=session_id,
            message=message,
            agent_type=agent_type,
            deep_search_enabled=deep_enabled,
            context=context,
            tools_used=tools_used,
            is_first_message=not history,
        )

    async def finish_turn(self, turn: ChatTurn, response: AgentResponse) -> ChatResult:
        """Persist the reply and record the agent on the session"""
        tools_used = list(turn.tools_used)
        for call in response.tool_calls or []:
            if call.get("tool") and call["tool"] not in tools_used:
                tools_used.append(call["tool"])

        await database.save_message(
            turn.session_id,
            turn.user_id,
            "assistant",
            response.message.content,
            tools_used=tools_used or None,
        )

        update = ChatSessionUpdate(agent_id=turn.agent_type)
        if turn.is_first_message:
            session = await database.get_session(turn.session_id, turn.user_id)
            if session and session.title == DEFAULT_TITLE:
                update.title = generate_title(turn.message)
        await database.update_session(turn.session_id, turn.user_id, update)

        return ChatResult(
            session_id=turn.session_id,
            agent_id=turn.agent_type,
            message=response.message.content,
            tools_used=tools_used,
            tool_calls=response.tool_calls,
            processing_time_ms=response.processing_time_ms,
        )

    async def handle_message(
        self,
        user_id: str,
        session_id: str,
        message: str,
        agent_id: Optional[str] = None,
        deep_search_enabled: Optional[bool] = None,
    ) -> ChatResult:
        turn = await self.prepare_turn(user_id, session_id, message, agent_id, deep_search_enabled)
        response = await self.router.route_message(message, turn.context, turn.agent_type)
        return await self.finish_turn(turn, response)

    async def stream_message(
        self,
        user_id: str,
        session_id: str,
        message: str,
        agent_id: Optional[str] = None,
        deep_search_enabled: Optional[bool] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield turn events for SSE

        start, agent, then tool_start / tool_end / token while the agent runs,
        and done with the persisted result. Failures end the stream with error.
        """
        yield {"type": "start", "session_id": session_id}
        try:
            turn = await self.prepare_turn(user_id, session_id, message, agent_id, deep_search_enabled)
            yield {"type": "agent", "agent": turn.agent_type, "tools_used": turn.tools_used}

            response = None
            async for event in self.router.stream_message(message, turn.context, turn.agent_type):
                if event["type"] == "final":
                    response = event["response"]
                else:
                    yield event

            result = await self.finish_turn(turn, response)
            yield {"type": "done", **result.to_dict()}
        except Exception as e:
            logger.error("Streaming turn failed", error=str(e))
            yield {"type": "error", "message": str(e)}
