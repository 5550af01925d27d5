"""Default Agent: general photography business assistant"""
from ..tools.registry import ToolKind
from .base import BaseAgent


class DefaultAgent(BaseAgent):
    id = "default"
    name = "General Assistant"
    description = "A versatile assistant that can help with a wide range of tasks"
    capabilities = [
        "Answer general questions",
        "Provide information on various topics",
        "Assist with basic tasks",
        "Scrape and analyze web content when URLs are provided",
        "Conduct deep research on complex topics using Perplexity AI",
        "Search internal knowledge base for relevant information",
        "Recommend other specialized agents when appropriate",
    ]
    icon = "bot"
    tools = [
        ToolKind.ECHO,
        ToolKind.DATE_TIME,
        ToolKind.WEB_SCRAPER,
        ToolKind.DETECT_AND_SCRAPE_URLS,
        ToolKind.DEEP_SEARCH,
        ToolKind.KNOWLEDGE_BASE,
    ]
