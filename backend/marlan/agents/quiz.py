"""Quiz Agent: lead-generation quizzes"""
from ..tools.registry import ToolKind
from .base import BaseAgent


class QuizAgent(BaseAgent):
    id = "quiz"
    name = "Quiz Builder"
    description = "Builds lead-generation quizzes that address client objections"
    capabilities = [
        "Design multi-question lead-generation quizzes",
        "Write statement slides that answer client objections",
        "Create offer and thank-you pages",
        "Suggest follow-up automation for quiz leads",
    ]
    icon = "list-checks"
    tools = [ToolKind.DATE_TIME, ToolKind.KNOWLEDGE_BASE]
