"""Structured JSON logging for the CAT engine and CLI."""

import logging
import sys
from typing import Any, TextIO

from pythonjsonlogger import jsonlogger

from adaptive_cat.core.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record: when, where, what, and which deployment."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["event"] = record.getMessage()
        log_record["service"] = settings.PROJECT_NAME
        log_record["env"] = settings.ENV

        # "event" carries the rendered message
        log_record.pop("message", None)
        log_record.pop("asctime", None)


def setup_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """
    Route all records through a single JSON handler on the root logger.

    Args:
        level: Level name; defaults to settings.LOG_LEVEL
        stream: Output stream; defaults to stdout
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
