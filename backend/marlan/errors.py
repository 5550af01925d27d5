"""Exception hierarchy and HTTP error helpers"""
from fastapi import HTTPException


class MarlanError(Exception):
    """Base class for application errors"""


class AgentNotFoundError(MarlanError):
    """Raised when no agent is registered under the requested type"""

    def __init__(self, agent_type: str):
        super().__init__(f'Agent type "{agent_type}" not found')
        self.agent_type = agent_type


class AuthenticationFailed(MarlanError):
    """Raised when a token is missing, invalid or rejected upstream (HTTP 401)"""


class SessionNotFound(MarlanError):
    """Raised when a session does not exist or belongs to another user (HTTP 404)"""


class HistoryApiError(MarlanError):
    """Raised when the chat history API answers with an unexpected status"""


class ToolExecutionError(MarlanError):
    """Raised inside a tool; converted into an error-shaped tool result"""


class ScrapeError(ToolExecutionError):
    """Raised when a URL cannot be fetched or parsed"""


class DeepSearchError(ToolExecutionError):
    """Raised when the Perplexity API is unavailable or returns an error"""


def api_error(status_code: int, error: str, message: str, headers: dict = None) -> HTTPException:
    """
    Build an HTTPException whose body is rendered as ``{"error", "message"}``

    Args:
        status_code: HTTP status code
        error: Short error label
        message: Human readable explanation
        headers: Extra response headers (e.g. Retry-After)

    Returns:
        HTTPException to raise from a route handler
    """
    return HTTPException(status_code=status_code, detail={"error": error, "message": message}, headers=headers)
