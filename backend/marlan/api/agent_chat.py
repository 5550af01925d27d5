"""Agent chat endpoints (JSON and SSE) and the agent catalogue"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..agents.types import AGENT_TYPES, AgentDescriptor
from ..auth import AuthUser, get_current_user
from ..errors import SessionNotFound, api_error
from ..utils.sse import SSE_HEADERS, format_sse
from ..utils.structured_logger import LogContext, get_logger

logger = get_logger(__name__)

router = APIRouter()


class AgentChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    session_id: Optional[str] = Field(default=None, description="Existing session; a new one is created when omitted")
    agent_id: Optional[str] = Field(default=None, description="Explicit agent selection")
    deep_search_enabled: Optional[bool] = Field(default=None, description="Overrides the session setting")


def _validate_agent(agent_id: Optional[str]):
    if agent_id is not None and agent_id not in AGENT_TYPES:
        raise api_error(400, "Bad Request", f'Agent type "{agent_id}" not found')


@router.get("/agents", response_model=List[AgentDescriptor])
async def api_list_agents(request: Request):
    return request.app.state.agent_router.descriptors()


@router.post("/agent-chat")
async def api_agent_chat(body: AgentChatRequest, request: Request, user: AuthUser = Depends(get_current_user)):
    """Run one turn and return the persisted reply"""
    _validate_agent(body.agent_id)
    session_id = body.session_id or str(uuid.uuid4())
    chat_service = request.app.state.chat_service

    with LogContext(session_id=session_id, user_id=user.id):
        try:
            result = await chat_service.handle_message(
                user.id, session_id, body.message, body.agent_id, body.deep_search_enabled
            )
        except SessionNotFound:
            raise api_error(404, "Not Found", "Chat session not found")

    return result.to_dict()


@router.post("/agent-chat/stream")
async def api_agent_chat_stream(body: AgentChatRequest, request: Request, user: AuthUser = Depends(get_current_user)):
    """SSE variant of /agent-chat: start, agent, token, tool_start, tool_end, done | error"""
    _validate_agent(body.agent_id)
    session_id = body.session_id or str(uuid.uuid4())
    chat_service = request.app.state.chat_service

    async def event_generator():
        async for event in chat_service.stream_message(
            user.id, session_id, body.message, body.agent_id, body.deep_search_enabled
        ):
            yield format_sse(event)

    return StreamingResponse(event_generator(), media_type="text/event-stream", headers=SSE_HEADERS)
