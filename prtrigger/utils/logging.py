"""
Structured logging utilities with JSON formatting and context injection.

This module provides structured logging capabilities with:
- JSON formatted log output for machine-readable logs
- Context injection (job_name, pull_id) via LoggerAdapter
- Standardized log fields across trigger components
"""

import logging
import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional, MutableMapping
from logging import LogRecord


# Attributes every LogRecord carries; anything else arrived through `extra`
_RECORD_ATTRIBUTES = frozenset([
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
])

_TOP_LEVEL_FIELDS = ("job_name", "pull_id", "event_kind")


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    
    Outputs log records as JSON with standard fields:
    - timestamp: ISO 8601 formatted timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - job_name / pull_id / event_kind: promoted trigger context
    - context: Any other extra fields
    - error: Error details when exc_info is attached
    """
    
    def format(self, record: LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        
        for field in _TOP_LEVEL_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)
        
        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and key not in _TOP_LEVEL_FIELDS
        }
        if extra_fields:
            log_data["context"] = extra_fields
        
        if record.exc_info:
            log_data["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "stack_trace": "".join(traceback.format_exception(*record.exc_info))
            }
        
        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName
        }
        
        return json.dumps(log_data, default=str)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that injects context fields into all log records.
    
    Used to bind a job name (and optionally a pull request id) once, so
    every line a trigger emits can be correlated.
    """
    
    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})
    
    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs
    
    def with_context(self, **context: Any) -> "ContextLoggerAdapter":
        """
        Create a new logger adapter with additional context.
        
        Args:
            **context: Additional context fields
            
        Returns:
            New logger adapter with merged context
        """
        new_extra = dict(self.extra)
        new_extra.update(context)
        return ContextLoggerAdapter(self.logger, new_extra)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.
    
    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    formatter = JSONFormatter()
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    
    # Reduce noise from third-party libraries
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, **context: Any) -> ContextLoggerAdapter:
    """
    Get a context-aware logger for a module.
    
    Example:
        logger = get_logger(__name__, job_name="folder/demo")
        logger.info("Starting trigger")  # Will include job_name
    """
    base_logger = logging.getLogger(name)
    return ContextLoggerAdapter(base_logger, context)


def log_trigger_event(
    logger: logging.LoggerAdapter,
    job_name: str,
    pull_id: int,
    event_kind: str,
    decision: str,
) -> None:
    """
    Log the outcome of one trigger decision with the required fields.
    
    Args:
        logger: Logger to use
        job_name: Full name of the job the event was delivered to
        pull_id: Pull request number
        event_kind: Kind of event (new_commit, retest, ...)
        decision: What the trigger decided (scheduled, ignored, ...)
    """
    logger.info(
        f"Pull request event {event_kind} for #{pull_id}: {decision}",
        extra={
            "job_name": job_name,
            "pull_id": pull_id,
            "event_kind": event_kind,
            "decision": decision,
        }
    )


def log_error_with_context(
    logger: logging.LoggerAdapter,
    message: str,
    error: Exception,
    **context: Any
) -> None:
    """
    Log error with full stack trace and context.
    """
    context.setdefault("error_type", type(error).__name__)
    logger.error(
        message,
        extra=context,
        exc_info=error
    )
