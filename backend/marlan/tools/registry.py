"""Typed tool registry"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from langchain_core.tools import StructuredTool

from ..utils.structured_logger import get_logger
from .common import create_basic_tool, date_time_tool, echo_tool, tool_error
from .deep_search import DEEP_SEARCH_DISABLED_MESSAGE, DeepSearchInput, DeepSearchService, deep_search
from .knowledge_base import KnowledgeBaseInput, knowledge_base
from .web_scraper import detect_and_scrape_tool, web_scraper_tool
from .web_search import SearchInput, combined_search, web_search

logger = get_logger(__name__)


class ToolKind(str, Enum):
    """Capabilities an agent can be equipped with"""
    WEB_SCRAPER = "webScraper"
    DETECT_AND_SCRAPE_URLS = "detectAndScrapeUrls"
    WEB_SEARCH = "webSearch"
    DEEP_SEARCH = "deepSearch"
    COMBINED_SEARCH = "combinedSearch"
    KNOWLEDGE_BASE = "knowledgeBase"
    DATE_TIME = "dateTime"
    ECHO = "echo"


@dataclass
class ToolContext:
    """Per-request values some tools depend on"""
    user_id: Optional[str] = None
    deep_search_enabled: bool = False


ToolFactory = Callable[[ToolContext], StructuredTool]


class ToolRegistry:
    """Maps each ToolKind to a factory producing a StructuredTool for a request"""

    def __init__(self):
        self._factories: Dict[ToolKind, ToolFactory] = {}

    def register(self, kind: ToolKind, factory: ToolFactory):
        self._factories[ToolKind(kind)] = factory

    @property
    def kinds(self) -> List[ToolKind]:
        return list(self._factories)

    def get(self, kind: ToolKind, context: Optional[ToolContext] = None) -> StructuredTool:
        """
        Build the tool registered for a kind

        Raises:
            KeyError: no tool registered for the kind
        """
        return self._factories[ToolKind(kind)](context or ToolContext())

    def tools_for(self, kinds: Iterable[ToolKind], context: Optional[ToolContext] = None) -> List[StructuredTool]:
        context = context or ToolContext()
        tools = []
        for kind in kinds:
            if ToolKind(kind) not in self._factories:
                logger.warning("Tool not registered, skipping", tool=str(kind))
                continue
            tools.append(self.get(kind, context))
        return tools


def create_default_registry(deep_search_service: Optional[DeepSearchService] = None) -> ToolRegistry:
    """Registry with every built-in tool"""
    service = deep_search_service or DeepSearchService()
    registry = ToolRegistry()

    registry.register(ToolKind.ECHO, lambda ctx: echo_tool)
    registry.register(ToolKind.DATE_TIME, lambda ctx: date_time_tool)
    registry.register(ToolKind.WEB_SCRAPER, lambda ctx: web_scraper_tool)
    registry.register(ToolKind.DETECT_AND_SCRAPE_URLS, lambda ctx: detect_and_scrape_tool)

    registry.register(ToolKind.WEB_SEARCH, lambda ctx: create_basic_tool(
        ToolKind.WEB_SEARCH.value,
        "Performs a web search and returns the top results with snippets.",
        SearchInput,
        web_search,
    ))

    registry.register(ToolKind.KNOWLEDGE_BASE, lambda ctx: create_basic_tool(
        ToolKind.KNOWLEDGE_BASE.value,
        "Search the internal knowledge base of photography business documents. "
        "Always check it before answering questions about the studio or its services.",
        KnowledgeBaseInput,
        knowledge_base,
    ))

    def deep_search_factory(ctx: ToolContext) -> StructuredTool:
        async def run(search_term: str):
            return await deep_search(search_term, service, ctx.deep_search_enabled, ctx.user_id)

        return create_basic_tool(
            ToolKind.DEEP_SEARCH.value,
            "Search the web for up-to-date information about any topic. Use this when you need "
            "information that might not be in your training data or when you need to verify current facts.",
            DeepSearchInput,
            run,
        )

    def combined_search_factory(ctx: ToolContext) -> StructuredTool:
        async def run_deep(query: str):
            if not ctx.deep_search_enabled:
                return tool_error(DEEP_SEARCH_DISABLED_MESSAGE)
            return await deep_search(query, service, True, ctx.user_id)

        async def run(query: str):
            return await combined_search(query, web_search, run_deep)

        return create_basic_tool(
            ToolKind.COMBINED_SEARCH.value,
            "Performs both a web search and a deep search, combining the results for comprehensive information.",
            SearchInput,
            run,
        )

    registry.register(ToolKind.DEEP_SEARCH, deep_search_factory)
    registry.register(ToolKind.COMBINED_SEARCH, combined_search_factory)
    return registry
