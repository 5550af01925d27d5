"""Optional Langfuse tracing for agent runs"""
import os
from typing import Any, Dict, List, Optional

from langfuse.langchain import CallbackHandler

from .config import config
from .utils.structured_logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER_KEYS = {"your-public-key-here", "your-secret-key-here"}

_enabled = False


def init_langfuse() -> bool:
    """
    Enable tracing when both Langfuse keys are configured

    The v3 CallbackHandler takes no arguments and reads its credentials from
    the environment, so the configured values are exported there.
    """
    global _enabled

    keys = (config.LANGFUSE_PUBLIC_KEY, config.LANGFUSE_SECRET_KEY)
    if not all(keys):
        logger.info("Langfuse not configured, tracing disabled")
        _enabled = False
    elif PLACEHOLDER_KEYS.intersection(keys):
        logger.warning("Langfuse keys are placeholders, tracing disabled")
        _enabled = False
    else:
        os.environ.update(
            LANGFUSE_PUBLIC_KEY=config.LANGFUSE_PUBLIC_KEY,
            LANGFUSE_SECRET_KEY=config.LANGFUSE_SECRET_KEY,
            LANGFUSE_HOST=config.LANGFUSE_HOST,
        )
        _enabled = True
        logger.info("Langfuse tracing enabled", host=config.LANGFUSE_HOST)
    return _enabled


def trace_run_config(
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    tags: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Runnable config carrying a fresh Langfuse handler for one agent call

    Session, user and tags are passed as ``langfuse_*`` metadata keys.
    Returns an empty config when tracing is off or the handler cannot be built.
    """
    if not _enabled:
        return {}

    try:
        handler = CallbackHandler()
    except Exception as e:
        logger.warning("Could not create Langfuse handler", error=str(e))
        return {}

    metadata = {
        key: value
        for key, value in (
            ("langfuse_session_id", session_id),
            ("langfuse_user_id", user_id),
            ("langfuse_tags", tags),
        )
        if value
    }
    return {"callbacks": [handler], "metadata": metadata}
