"""Agents module"""
from typing import Optional

from ..tools.registry import ToolRegistry
from .ads import FacebookAdsAgent, GoogleAdsAgent
from .base import APOLOGY_MESSAGE, BaseAgent
from .copywriting import CopywritingAgent
from .default import DefaultAgent
from .quiz import QuizAgent
from .router import AgentRouter


def build_agent_router(registry: Optional[ToolRegistry] = None, llm=None) -> AgentRouter:
    """Router with every agent registered, sharing one tool registry"""
    return AgentRouter([
        DefaultAgent(registry, llm),
        CopywritingAgent(registry, llm),
        GoogleAdsAgent(registry, llm),
        FacebookAdsAgent(registry, llm),
        QuizAgent(registry, llm),
    ])


__all__ = [
    "APOLOGY_MESSAGE",
    "AgentRouter",
    "BaseAgent",
    "build_agent_router",
]
