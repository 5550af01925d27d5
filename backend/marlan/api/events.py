"""Server-sent event stream for per-user notifications"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from ..auth import TokenVerifier, authenticate_token, get_token_verifier
from ..errors import api_error
from ..events import ConnectionLimitReached
from ..utils.sse import SSE_HEADERS

router = APIRouter()


@router.get("/events")
async def api_events(request: Request, auth: Optional[str] = None, verifier: TokenVerifier = Depends(get_token_verifier)):
    """
    EventSource cannot send headers, so the token travels in ``?auth=``
    """
    user = await authenticate_token(auth, verifier)
    events = request.app.state.events

    try:
        client = events.connect(user.id)
    except ConnectionLimitReached:
        raise api_error(503, "Service Unavailable", "Too many connections")

    return StreamingResponse(events.stream(client), media_type="text/event-stream", headers=SSE_HEADERS)
