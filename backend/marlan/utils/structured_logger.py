"""Structured logging built on structlog"""
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

QUIET_LOGGERS = (
    "aiosqlite",
    "httpx",
    "httpcore",
    "urllib3",
    "asyncio",
    "langchain",
    "langchain_core",
    "openai",
    "langfuse",
)


def shorten_user_id(logger, method_name, event_dict):
    """Only a prefix of the user id ends up in logs"""
    user_id = event_dict.get("user_id")
    if isinstance(user_id, str) and len(user_id) > 8:
        event_dict["user_id"] = f"{user_id[:8]}..."
    return event_dict


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_structured_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    enable_json: bool = True,
    enable_console: bool = True,
):
    """
    Configure structlog on top of the standard logging module

    Every event goes to marlan_<YYYYMMDD>.log under log_dir, named for the
    startup day and rotated by size (10 MB, 5 backups). Errors also go to
    marlan_error_<YYYYMMDD>.log and the console gets the configured level.

    Args:
        log_level: DEBUG/INFO/WARNING/ERROR
        log_dir: Directory for log files
        enable_json: Render JSON instead of coloured console output
        enable_console: Also log to stdout
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    day = datetime.now().strftime("%Y%m%d")
    formatter = logging.Formatter("%(message)s")

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(formatter)
        root.addHandler(console)
    root.addHandler(_rotating_handler(log_path / f"marlan_{day}.log", logging.DEBUG, formatter))
    root.addHandler(_rotating_handler(log_path / f"marlan_error_{day}.log", logging.ERROR, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = structlog.processors.JSONRenderer() if enable_json else structlog.dev.ConsoleRenderer(colors=True)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            shorten_user_id,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    get_logger(__name__).info(
        "Structured logging enabled",
        log_level=log_level,
        log_dir=str(log_path.absolute()),
        output_format="json" if enable_json else "console",
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Bind request_id / session_id / user_id to every event logged inside the block

        with LogContext(request_id=rid, user_id=user.id):
            ...
    """

    def __init__(
        self,
        request_id: Optional[str] = None,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        self.values = {
            key: value
            for key, value in (("request_id", request_id), ("session_id", session_id), ("user_id", user_id))
            if value
        }
        self._tokens = None

    def __enter__(self):
        self._tokens = structlog.contextvars.bind_contextvars(**self.values)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = None


def log_section(logger, title: str, level: str = "info"):
    """Log a title framed by separator lines"""
    log = getattr(logger, level.lower())
    log("=" * 60)
    log(title)
    log("=" * 60)
