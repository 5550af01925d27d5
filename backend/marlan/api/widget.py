"""Public widget chat: anonymous, IP rate limited, streamed over SSE"""
import uuid
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..config import config
from ..errors import api_error
from ..utils.sse import SSE_HEADERS, format_sse
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class WidgetChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    session_id: Optional[uuid.UUID] = None


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.get("/widget-chat")
async def api_widget_ping():
    return {"status": "ok", "message": "Widget chat endpoint is available"}


@router.post("/widget-chat")
async def api_widget_chat(body: WidgetChatRequest, request: Request):
    limiter = request.app.state.widget_rate_limiter
    ip = client_ip(request)
    if not limiter.hit(ip):
        retry_after = limiter.retry_after(ip)
        logger.warning("Widget rate limit exceeded", client_ip=ip, retry_after_s=retry_after)
        raise api_error(
            429,
            "Too Many Requests",
            "Rate limit exceeded. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )

    session_id = str(body.session_id or uuid.uuid4())
    chat_service = request.app.state.chat_service

    async def event_generator():
        async for event in chat_service.stream_message(
            config.WIDGET_USER_ID, session_id, body.message, agent_id="default", deep_search_enabled=False
        ):
            yield format_sse(event)

    return StreamingResponse(event_generator(), media_type="text/event-stream", headers=SSE_HEADERS)
