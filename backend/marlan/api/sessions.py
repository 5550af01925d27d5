"""Chat session, message and history endpoints"""
from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..auth import AuthUser, get_current_user
from ..db import database
from ..db.models import ChatMessage, ChatMessageCreate, ChatSession, ChatSessionCreate, ChatSessionUpdate
from ..errors import api_error
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class AiMessageRequest(BaseModel):
    """Assistant reply persisted by the client after a streamed turn"""
    session_id: str
    content: str
    role: str = "assistant"
    tools_used: Optional[Union[List[str], dict]] = None


class UpdateTitleRequest(BaseModel):
    session_id: str = Field(..., description="Session to rename")
    title: str = Field(..., min_length=1)


async def _owned_session(session_id: str, user: AuthUser) -> ChatSession:
    session = await database.get_session(session_id, user.id)
    if not session:
        raise api_error(404, "Not Found", "Chat session not found")
    return session


# ---------------------------------------------------------------------------
# Sidebar history
# ---------------------------------------------------------------------------

@router.get("/history", response_model=List[ChatSession])
async def api_get_history(user: AuthUser = Depends(get_current_user)):
    """Chat list for the sidebar, most recent first"""
    return await database.list_sessions(user.id)


@router.delete("/history")
async def api_delete_history_item(id: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    if not id:
        raise api_error(400, "Bad Request", "Chat id is required")
    if not await database.delete_session(id, user.id):
        raise api_error(404, "Not Found", "Chat session not found")
    logger.info("Chat deleted from history", session=id)
    return {"success": True, "id": id}


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.post("/chat/session", response_model=ChatSession)
async def api_create_session(data: ChatSessionCreate, user: AuthUser = Depends(get_current_user)):
    if data.id:
        existing = await database.get_session(data.id)
        if existing:
            if existing.user_id != user.id:
                raise api_error(404, "Not Found", "Chat session not found")
            return existing
    return await database.create_session(user.id, data)


@router.get("/chat/sessions", response_model=List[ChatSession])
async def api_list_sessions(user: AuthUser = Depends(get_current_user)):
    return await database.list_sessions(user.id)


@router.post("/chat/ai-message", response_model=ChatMessage)
async def api_save_ai_message(body: AiMessageRequest, user: AuthUser = Depends(get_current_user)):
    """Persist an assistant message; any other role is rejected without writing"""
    if body.role != "assistant":
        raise api_error(400, "Bad Request", "Only assistant messages can be saved through this endpoint")
    if not body.content.strip():
        raise api_error(400, "Bad Request", "Message content is required")

    await _owned_session(body.session_id, user)
    return await database.save_message(
        body.session_id, user.id, "assistant", body.content, tools_used=body.tools_used
    )


@router.post("/chat/update-title", response_model=ChatSession)
async def api_update_title(body: UpdateTitleRequest, user: AuthUser = Depends(get_current_user)):
    session = await database.update_session(body.session_id, user.id, ChatSessionUpdate(title=body.title.strip()))
    if not session:
        raise api_error(404, "Not Found", "Chat session not found")
    return session


@router.get("/chat/{session_id}", response_model=ChatSession)
async def api_get_session(session_id: str, user: AuthUser = Depends(get_current_user)):
    return await _owned_session(session_id, user)


@router.patch("/chat/{session_id}", response_model=ChatSession)
async def api_update_session(session_id: str, update: ChatSessionUpdate, user: AuthUser = Depends(get_current_user)):
    session = await database.update_session(session_id, user.id, update)
    if not session:
        raise api_error(404, "Not Found", "Chat session not found")
    return session


@router.delete("/chat/{session_id}")
async def api_delete_session(session_id: str, user: AuthUser = Depends(get_current_user)):
    if not await database.delete_session(session_id, user.id):
        raise api_error(404, "Not Found", "Chat session not found")
    return {"success": True, "id": session_id}


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@router.get("/chat/{session_id}/messages", response_model=List[ChatMessage])
async def api_list_messages(session_id: str, limit: Optional[int] = None, user: AuthUser = Depends(get_current_user)):
    await _owned_session(session_id, user)
    return await database.list_messages(session_id, limit=limit)


@router.post("/chat/{session_id}/messages", response_model=ChatMessage)
async def api_save_message(session_id: str, body: ChatMessageCreate, user: AuthUser = Depends(get_current_user)):
    session = await database.ensure_session_exists(session_id, user.id)
    if session is None:
        raise api_error(404, "Not Found", "Chat session not found")
    return await database.save_message(session_id, user.id, body.role, body.content, tools_used=body.tools_used)


@router.get("/chat/{session_id}/messages/count")
async def api_count_messages(session_id: str, user: AuthUser = Depends(get_current_user)):
    """Message count; 0 for sessions that do not exist or belong to someone else"""
    session = await database.get_session(session_id, user.id)
    count = await database.count_messages(session_id) if session else 0
    return {"count": count}
