"""Agent data types"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, Field

AgentType = Literal["default", "copywriting", "google-ads", "facebook-ads", "quiz"]

# Declaration order also breaks ties in agent suggestion
AGENT_TYPES: tuple = get_args(AgentType)

AgentRole = Literal["user", "assistant", "system", "tool"]


class AgentMessage(BaseModel):
    """A message exchanged with an agent"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: AgentRole
    content: str
    created_at: datetime = Field(default_factory=datetime.now)
    metadata: Optional[Dict[str, Any]] = None


class AgentContext(BaseModel):
    """Conversation state handed to an agent for one turn"""
    session_id: str
    conversation_id: str
    history: List[AgentMessage] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AgentResponse(BaseModel):
    """Result of processing one message"""
    message: AgentMessage
    tool_calls: Optional[List[Dict[str, Any]]] = None
    usage: Optional[Dict[str, Any]] = None
    processing_time_ms: int = 0


class AgentDescriptor(BaseModel):
    """Public description of an agent (GET /api/agents)"""
    id: str
    name: str
    description: str
    capabilities: List[str]
    icon: str


def create_agent_message(role: AgentRole, content: str, metadata: Optional[Dict[str, Any]] = None) -> AgentMessage:
    return AgentMessage(role=role, content=content, metadata=metadata)


def create_agent_context(
    initial_messages: Optional[List[AgentMessage]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    session_id: Optional[str] = None,
    conversation_id: Optional[str] = None,
) -> AgentContext:
    """
    Create a new agent context

    Args:
        initial_messages: Existing history, oldest first
        metadata: Initial metadata (e.g. current_agent_id)
        session_id: Session ID (generated when omitted)
        conversation_id: Conversation ID (defaults to the session ID when given)

    Returns:
        AgentContext
    """
    session_id = session_id or str(uuid.uuid4())
    return AgentContext(
        session_id=session_id,
        conversation_id=conversation_id or session_id,
        history=list(initial_messages or []),
        metadata={"created_at": datetime.now().isoformat(), **(metadata or {})},
    )
