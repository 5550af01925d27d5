"""System prompts and prompt assembly helpers"""
from typing import Dict, Optional

from ..tools.results import ToolResults
from .base import (
    BASE_PROMPT,
    COMMON_TOOL_DESCRIPTION,
    DEEP_SEARCH_DISABLED_INSTRUCTION,
    DEEP_SEARCH_ENABLED_INSTRUCTION,
    RESOURCE_ACKNOWLEDGEMENT_INSTRUCTION,
)
from .specialists import COPYWRITING_PROMPT, FACEBOOK_ADS_PROMPT, GOOGLE_ADS_PROMPT, QUIZ_PROMPT

KNOWLEDGE_BASE_BANNER = "### KNOWLEDGE BASE INFORMATION (HIGHEST PRIORITY):"
WEB_SCRAPER_BANNER = "### SCRAPED URL CONTENT (MEDIUM PRIORITY):"
DEEP_SEARCH_BANNER = "### PERPLEXITY RESEARCH INFORMATION (LOWEST PRIORITY):"

# Specialist instructions per agent type; the default agent has none
AGENT_PROMPTS: Dict[str, str] = {
    "default": "",
    "copywriting": COPYWRITING_PROMPT,
    "google-ads": GOOGLE_ADS_PROMPT,
    "facebook-ads": FACEBOOK_ADS_PROMPT,
    "quiz": QUIZ_PROMPT,
}


def build_system_prompt(agent_type: str) -> str:
    """Base prompt followed by the agent's specialist block"""
    prompt = BASE_PROMPT

    specialized = AGENT_PROMPTS.get(agent_type, "")
    if agent_type != "default" and specialized:
        prompt += (
            f"\n\n### SPECIALIZED AGENT INSTRUCTIONS ({agent_type.upper()}):\n\n"
            f"{specialized}\n\n### END SPECIALIZED INSTRUCTIONS ###\n\n"
            "Remember to follow both the base instructions above and these specialized "
            "instructions for your role."
        )

    return prompt


def enhance_prompt_with_tool_results(system_prompt: str, tool_results: Optional[ToolResults] = None) -> str:
    """
    Append tool outputs to a system prompt in priority order

    1. Knowledge base (highest)
    2. Web scraper (medium)
    3. Deep search (lowest)
    """
    if not tool_results:
        return system_prompt

    enhanced = system_prompt
    if tool_results.rag_content:
        enhanced += f"\n\n{KNOWLEDGE_BASE_BANNER}\n{tool_results.rag_content}"
    if tool_results.web_scraper:
        enhanced += f"\n\n{WEB_SCRAPER_BANNER}\n{tool_results.web_scraper}"
    if tool_results.deep_search:
        enhanced += f"\n\n{DEEP_SEARCH_BANNER}\n{tool_results.deep_search}"
    return enhanced


__all__ = [
    "AGENT_PROMPTS",
    "BASE_PROMPT",
    "COMMON_TOOL_DESCRIPTION",
    "DEEP_SEARCH_ENABLED_INSTRUCTION",
    "DEEP_SEARCH_DISABLED_INSTRUCTION",
    "RESOURCE_ACKNOWLEDGEMENT_INSTRUCTION",
    "KNOWLEDGE_BASE_BANNER",
    "WEB_SCRAPER_BANNER",
    "DEEP_SEARCH_BANNER",
    "build_system_prompt",
    "enhance_prompt_with_tool_results",
]
