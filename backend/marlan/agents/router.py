"""Agent router: agent registry, per-turn routing and keyword suggestion"""
import re
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from ..errors import AgentNotFoundError
from ..prompts import (
    COMMON_TOOL_DESCRIPTION,
    DEEP_SEARCH_DISABLED_INSTRUCTION,
    DEEP_SEARCH_ENABLED_INSTRUCTION,
    RESOURCE_ACKNOWLEDGEMENT_INSTRUCTION,
    build_system_prompt,
)
from ..utils.structured_logger import get_logger
from .base import APOLOGY_MESSAGE, BaseAgent
from .types import AGENT_TYPES, AgentContext, AgentDescriptor, AgentResponse, create_agent_message

logger = get_logger(__name__)

ROUTING_THRESHOLD = 5
MIN_ROUTABLE_LENGTH = 15
INFORMATIONAL_PREFIXES = ("what", "how", "who", "when", "why")

# Keywords that point at a specialist; scored in suggest_agent
AGENT_KEYWORDS: Dict[str, List[str]] = {
    "default": [],
    "copywriting": [
        "copywriting", "copy", "website text", "landing page", "sales page", "email copy",
        "marketing copy", "write copy", "content writing", "sales letter", "website content",
        "product description", "brand message", "tagline", "slogan", "value proposition",
        "messaging", "brand voice", "brand story", "write content", "content strategy",
        "write a website", "create a website", "website copy", "website structure", "site content",
        "web content", "web copy", "website sections", "about page", "contact page", "services page",
        "homepage content", "write website", "create website", "full website",
        "website for", "site for", "web page content", "website", "web page copy", "website creation",
    ],
    "google-ads": [
        "google ads", "google ad", "google advertising", "search ads", "ppc", "pay per click",
        "adwords", "search campaign", "display ads", "google campaign", "ad copy", "ad text",
        "google keywords", "search terms", "ad extensions", "quality score", "ad rank",
        "google search ads", "write google ads", "create google ads",
    ],
    "facebook-ads": [
        "facebook ad", "facebook ads", "social ad", "instagram ad", "meta ad",
        "facebook campaign", "instagram campaign", "meta campaign", "social media ad",
        "facebook advertising", "instagram advertising", "meta advertising",
        "facebook audience", "lookalike audience", "custom audience", "targeting",
        "facebook pixel", "conversion campaign", "engagement campaign", "lead generation",
        "carousel ad", "stories ad", "reels ad", "messenger ad", "facebook business",
        "meta business", "social media marketing", "facebook marketing",
    ],
    "quiz": [
        "quiz", "question", "test", "assessment", "questionnaire",
        "survey", "poll", "typeform", "google form", "microsoft form",
        "multiple choice", "knowledge check", "evaluation", "exam",
        "interactive quiz", "personality quiz", "trivia", "quiz maker",
        "assessment tool", "feedback form", "scoring", "grading",
        "quiz template", "quiz questions", "interactive assessment",
    ],
}


class AgentRouter:
    """Holds the agents and forwards each turn to exactly one of them"""

    def __init__(self, agents: Optional[Iterable[BaseAgent]] = None):
        self._agents: Dict[str, BaseAgent] = {}
        if agents:
            self.register_agents(agents)

    def register_agent(self, agent: BaseAgent):
        self._agents[agent.id] = agent
        logger.debug("Agent registered", agent=agent.id)

    def register_agents(self, agents: Iterable[BaseAgent]):
        for agent in agents:
            self.register_agent(agent)

    def get_agent(self, agent_type: str) -> BaseAgent:
        """
        Raises:
            AgentNotFoundError: no agent registered under agent_type
        """
        agent = self._agents.get(agent_type)
        if agent is None:
            raise AgentNotFoundError(agent_type)
        return agent

    def all_agents(self) -> List[BaseAgent]:
        return list(self._agents.values())

    def descriptors(self) -> List[AgentDescriptor]:
        return [agent.descriptor() for agent in self._agents.values()]

    def _switch_agent(self, context: AgentContext, agent_type: str):
        previous = context.metadata.get("current_agent_id")
        if previous and previous != agent_type:
            context.history.append(
                create_agent_message("system", f"Switching from {previous} agent to {agent_type} agent")
            )
            logger.info("Switching agents", previous_agent=previous, new_agent=agent_type)
        context.metadata["current_agent_id"] = agent_type

    async def route_message(self, message: str, context: AgentContext, agent_type: str = "default") -> AgentResponse:
        """
        Forward a message to one agent

        Never raises: any failure, including an unknown agent type, yields the
        apology message with processing_time_ms 0.
        """
        logger.info("Routing message", agent=agent_type, session=context.session_id)
        try:
            self._switch_agent(context, agent_type)
            agent = self.get_agent(agent_type)
            return await agent.process_message(message, context)
        except Exception as e:
            logger.error("Error routing message", agent=agent_type, error=str(e))
            error_message = create_agent_message("assistant", APOLOGY_MESSAGE, {"error": str(e)})
            context.history.append(error_message)
            return AgentResponse(message=error_message, processing_time_ms=0)

    async def stream_message(
        self, message: str, context: AgentContext, agent_type: str = "default"
    ) -> AsyncIterator[Dict[str, Any]]:
        """Streaming counterpart of route_message; always ends with a ``final`` event"""
        try:
            self._switch_agent(context, agent_type)
            agent = self.get_agent(agent_type)
        except AgentNotFoundError as e:
            logger.error("Error routing message", agent=agent_type, error=str(e))
            error_message = create_agent_message("assistant", APOLOGY_MESSAGE, {"error": str(e)})
            context.history.append(error_message)
            yield {"type": "final", "response": AgentResponse(message=error_message, processing_time_ms=0)}
            return

        async for event in agent.stream_message(message, context):
            yield event

    def suggest_agent(self, message: str) -> str:
        """
        Pick an agent from the message text

        Each matching keyword scores 2 per word, plus 5 when the message starts
        with it and 3 when it matches as a whole phrase. The best agent wins if
        it reaches the threshold; ties keep the earlier agent.
        """
        content = (message or "").lower().strip()

        if len(content) < MIN_ROUTABLE_LENGTH or content.startswith(INFORMATIONAL_PREFIXES):
            logger.debug("Skipping agent routing for informational query", content_length=len(content))
            return "default"

        scores = {agent_type: 0 for agent_type in AGENT_TYPES}
        for agent_type in AGENT_TYPES:
            for keyword in AGENT_KEYWORDS.get(agent_type, []):
                keyword = keyword.lower()
                if keyword not in content:
                    continue
                scores[agent_type] += len(keyword.split()) * 2
                if content.startswith(keyword):
                    scores[agent_type] += 5
                if re.search(rf"\b{re.escape(keyword)}\b", content):
                    scores[agent_type] += 3

        best_agent, best_score = "default", 0
        for agent_type in AGENT_TYPES:
            if scores[agent_type] > best_score:
                best_agent, best_score = agent_type, scores[agent_type]

        logger.debug("Agent routing scores", scores=scores)

        if best_score >= ROUTING_THRESHOLD:
            logger.info("Auto-routed to specialized agent", agent=best_agent, score=best_score)
            return best_agent
        return "default"

    def resolve_agent(self, selected_agent_id: Optional[str], message: str) -> str:
        """An explicit non-default selection wins, otherwise suggest from the message"""
        if selected_agent_id and selected_agent_id != "default":
            logger.info("Using explicitly selected agent", agent=selected_agent_id)
            return selected_agent_id
        return self.suggest_agent(message)

    def get_system_prompt(self, agent_type: str, deep_search_enabled: bool = False) -> str:
        """Full system prompt for an agent, including tool and deep search instructions"""
        prompt = "\n\n".join([
            build_system_prompt(agent_type),
            COMMON_TOOL_DESCRIPTION,
            DEEP_SEARCH_ENABLED_INSTRUCTION if deep_search_enabled else DEEP_SEARCH_DISABLED_INSTRUCTION,
            RESOURCE_ACKNOWLEDGEMENT_INSTRUCTION,
        ])
        logger.debug("System prompt built", agent=agent_type, prompt_length=len(prompt))
        return prompt
