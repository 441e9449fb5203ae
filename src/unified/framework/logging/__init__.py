"""
Unified Logging - Structured, stage-aware logging.

This module provides:
- Structured logging with structlog
- Processing context propagation via contextvars
- Timing utilities for stage durations
- Settings-based configuration

Usage:
    from unified.framework.logging import get_logger, configure_logging, log_step

    configure_logging()
    log = get_logger(__name__)

    with log_step("processor.parse", processor="markdown"):
        tree = await parser.parse()
"""

from unified.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    new_span_id,
    push_context,
    scoped_context,
    set_context,
)
from unified.framework.logging.timing import TimingResult, log_step, timed_block
from unified.framework.logging.config import configure_logging, is_configured

__all__ = [
    # Configuration
    "configure_logging",
    "is_configured",
    # Context
    "get_logger",
    "set_context",
    "clear_context",
    "get_context",
    "bind_context",
    "push_context",
    "scoped_context",
    "new_span_id",
    "LogContext",
    # Timing
    "log_step",
    "timed_block",
    "TimingResult",
]
