"""Advertising agents: Google Ads and Facebook Ads specialists"""
from ..tools.registry import ToolKind
from .base import BaseAgent
from .types import AgentContext

ADS_TOOLS = [ToolKind.DATE_TIME, ToolKind.KNOWLEDGE_BASE, ToolKind.WEB_SCRAPER, ToolKind.DEEP_SEARCH]


class GoogleAdsAgent(BaseAgent):
    id = "google-ads"
    name = "Google Ads Specialist"
    description = "Expert in Google Ads campaign creation and optimization"
    capabilities = [
        "Create Google Ads campaigns",
        "Optimize ad performance",
        "Analyze keywords and competition",
        "Generate effective ad copy",
        "Provide budget recommendations",
    ]
    icon = "google"
    tools = ADS_TOOLS

    def format_prompt(self, context: AgentContext) -> str:
        return (
            f"{super().format_prompt(context)}\n\n"
            "Remember to follow Google Ads best practices and focus on ROI-driven strategies."
        )


class FacebookAdsAgent(BaseAgent):
    id = "facebook-ads"
    name = "Facebook Ads Specialist"
    description = "Expert in Facebook and Instagram advertising strategies"
    capabilities = [
        "Create Facebook and Instagram ad campaigns",
        "Develop audience targeting strategies",
        "Optimize ad creative and copy",
        "Analyze campaign performance",
        "Provide budget allocation recommendations",
    ]
    icon = "facebook"
    tools = ADS_TOOLS

    def format_prompt(self, context: AgentContext) -> str:
        return (
            f"{super().format_prompt(context)}\n\n"
            "Remember to focus on audience targeting, engaging creative and clear calls to action."
        )
