"""Copywriting Agent: website, email and marketing copy"""
from ..tools.registry import ToolKind
from .base import BaseAgent


class CopywritingAgent(BaseAgent):
    id = "copywriting"
    name = "Copywriting Specialist"
    description = "Writes website, landing page, email and marketing copy for photography studios"
    capabilities = [
        "Write website and landing page copy",
        "Draft email and text message campaigns",
        "Develop brand voice and messaging",
        "Structure website sections and calls to action",
        "Rewrite existing copy from a scraped page",
    ]
    icon = "pen"
    tools = [
        ToolKind.DATE_TIME,
        ToolKind.KNOWLEDGE_BASE,
        ToolKind.WEB_SCRAPER,
        ToolKind.DEEP_SEARCH,
    ]
