"""
Utility modules for the pull request trigger.
"""

from prtrigger.utils.logging import (
    ContextLoggerAdapter,
    JSONFormatter,
    get_logger,
    setup_logging,
    log_trigger_event,
    log_error_with_context,
)

__all__ = [
    "ContextLoggerAdapter",
    "JSONFormatter",
    "get_logger",
    "setup_logging",
    "log_trigger_event",
    "log_error_with_context",
]
