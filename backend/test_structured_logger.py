"""Tests for logging setup"""
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler

import structlog

from marlan.utils.structured_logger import (
    LOG_BACKUPS,
    MAX_LOG_BYTES,
    LogContext,
    get_logger,
    setup_structured_logging,
    shorten_user_id,
)


def test_log_files_are_dated_and_rotate_by_size(tmp_path):
    setup_structured_logging(log_dir=str(tmp_path), enable_console=False)
    day = datetime.now().strftime("%Y%m%d")
    root = logging.getLogger()
    try:
        handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        get_logger("marlan.test").error("Booking failed", studio="Harbor Light")

        assert sorted(h.baseFilename for h in handlers) == sorted(
            [str(tmp_path / f"marlan_{day}.log"), str(tmp_path / f"marlan_error_{day}.log")]
        )
        assert all(h.maxBytes == MAX_LOG_BYTES and h.backupCount == LOG_BACKUPS for h in handlers)
        for handler in handlers:
            handler.flush()
        assert "Booking failed" in (tmp_path / f"marlan_error_{day}.log").read_text()
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)


def test_user_ids_are_shortened():
    event = shorten_user_id(None, "info", {"event": "x", "user_id": "0123456789abcdef"})
    assert event["user_id"] == "01234567..."


def test_log_context_binds_and_restores():
    with LogContext(request_id="req-1"):
        assert structlog.contextvars.get_contextvars()["request_id"] == "req-1"
    assert "request_id" not in structlog.contextvars.get_contextvars()
