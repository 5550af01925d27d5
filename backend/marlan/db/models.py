"""Data model definitions"""
from datetime import datetime
from typing import Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field

MessageRole = Literal["user", "assistant", "system", "tool"]


class ChatSession(BaseModel):
    """Chat session (conversation)"""
    id: str = Field(..., description="Session ID")
    user_id: str = Field(..., description="Owner user ID")
    title: str = Field(default="New Conversation", description="Session title")
    agent_id: str = Field(default="default", description="Currently selected agent")
    deep_search_enabled: bool = Field(default=False, description="Whether deep search may run")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation time")
    updated_at: datetime = Field(default_factory=datetime.now, description="Last update time")


class ChatSessionCreate(BaseModel):
    """Create session request"""
    id: Optional[str] = Field(default=None, description="Client generated session ID (optional)")
    title: Optional[str] = Field(default=None, description="Session title (optional)")
    agent_id: str = Field(default="default", description="Initial agent")
    deep_search_enabled: bool = Field(default=False, description="Enable deep search")


class ChatSessionUpdate(BaseModel):
    """Update session request"""
    title: Optional[str] = Field(default=None, description="Session title")
    agent_id: Optional[str] = Field(default=None, description="Selected agent")
    deep_search_enabled: Optional[bool] = Field(default=None, description="Enable deep search")


class ChatMessage(BaseModel):
    """Persisted chat message"""
    id: str
    session_id: str
    user_id: str
    role: MessageRole
    content: str
    tools_used: Optional[Union[List[str], dict]] = None
    created_at: datetime = Field(default_factory=datetime.now)


class ChatMessageCreate(BaseModel):
    """Save message request"""
    role: MessageRole = "user"
    content: str
    tools_used: Optional[Union[List[str], dict]] = None


class UserProfile(BaseModel):
    """Photography studio profile used to personalise prompts"""
    user_id: str
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    website_url: Optional[str] = None
    location: Optional[str] = None
    company_description: Optional[str] = None
    website_summary: Optional[str] = None
    is_admin: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class UserProfileUpdate(BaseModel):
    """Profile update request"""
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    website_url: Optional[str] = None
    location: Optional[str] = None
    company_description: Optional[str] = None
    website_summary: Optional[str] = None


class KnowledgeDocument(BaseModel):
    """Knowledge base document"""
    id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    similarity: float = 0.0


class DashboardStats(BaseModel):
    """Admin dashboard counters"""
    user_count: int
    admin_count: int
    session_count: int
    message_count: int
    sessions_last_24h: int
    messages_last_24h: int
