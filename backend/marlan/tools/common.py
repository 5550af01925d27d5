"""Tool construction helpers and general purpose tools"""
import time
from datetime import datetime, timezone as dt_timezone
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Type
from zoneinfo import ZoneInfo

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

from ..utils.structured_logger import get_logger

logger = get_logger(__name__)


def tool_error(message: str) -> dict:
    """Error-shaped tool result"""
    return {"error": True, "message": message}


def create_basic_tool(
    name: str,
    description: str,
    args_schema: Type[BaseModel],
    coroutine: Callable[..., Awaitable[Any]],
) -> StructuredTool:
    """
    Wrap an async function into a StructuredTool that logs its usage

    Exceptions raised by the function are returned as
    ``{"error": True, "message": ...}`` instead of propagating to the agent.

    Args:
        name: Tool name shown to the model
        description: Tool description shown to the model
        args_schema: Pydantic model describing the arguments
        coroutine: Async implementation

    Returns:
        StructuredTool
    """

    @wraps(coroutine)
    async def _run(**kwargs):
        start = time.perf_counter()
        logger.debug("Executing tool", tool=name, params=kwargs)
        try:
            result = await coroutine(**kwargs)
        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool=name,
                error=str(e),
                execution_time_ms=round((time.perf_counter() - start) * 1000),
            )
            return tool_error(str(e))

        logger.debug(
            "Tool executed",
            tool=name,
            execution_time_ms=round((time.perf_counter() - start) * 1000),
        )
        return result

    return StructuredTool.from_function(
        coroutine=_run,
        name=name,
        description=description,
        args_schema=args_schema,
    )


class EchoInput(BaseModel):
    message: str = Field(description="The message to echo back")


class DateTimeInput(BaseModel):
    timezone: Optional[str] = Field(default="UTC", description="Timezone to use (default: UTC)")


async def echo(message: str) -> dict:
    return {"message": message}


async def date_time(timezone: Optional[str] = "UTC") -> dict:
    """Current date and time in the requested IANA timezone"""
    timezone = timezone or "UTC"
    now = datetime.now(dt_timezone.utc)
    local = now.astimezone(ZoneInfo(timezone))
    return {
        "iso": now.isoformat(),
        "formatted": local.strftime("%A, %B %d, %Y %I:%M:%S %p"),
        "timezone": timezone,
    }


echo_tool = create_basic_tool(
    "echo",
    "Echoes back the input message",
    EchoInput,
    echo,
)

date_time_tool = create_basic_tool(
    "dateTime",
    "Get the current date and time",
    DateTimeInput,
    date_time,
)
