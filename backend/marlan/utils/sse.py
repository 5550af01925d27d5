"""Server-sent event helpers"""
import json

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(payload: dict) -> str:
    """Encode a payload as one SSE data frame"""
    return f"data: {json.dumps(payload, ensure_ascii=False, default=str)}\n\n"
