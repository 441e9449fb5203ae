"""
Logging configuration.

``configure_logging()`` sets up structlog on top of the stdlib
``logging`` module.  Anything not passed explicitly comes from
``UnifiedSettings``:

- UNIFIED_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- UNIFIED_LOG_FORMAT: console | json (default: console)
- UNIFIED_LOG_DEBUG_PROCESSORS: JSON list of processor families whose
  DEBUG events are always emitted, e.g. '["markdown"]'

Usage:
    from unified.framework.logging import configure_logging

    configure_logging()
    configure_logging(level="DEBUG", format="json", force=True)
"""

import logging
import sys
from collections.abc import Iterable
from typing import Any, Literal

import structlog
from structlog.types import Processor

from unified.core.settings import get_settings
from unified.framework.logging.context import add_context_processor, get_context

_configured = False

_LEVELS = logging.getLevelNamesMapping()


def _family_debug_filter(families: Iterable[str], level: str) -> Processor:
    """
    Level filter that lets every event of the listed families through.

    The family is read from the event, falling back to the logging
    context (which is merged into the event later in the chain).
    """
    verbose = frozenset(families)
    threshold = _LEVELS[level]

    def filter_by_family(logger: Any, method_name: str, event_dict: dict) -> dict:
        family = event_dict.get("processor") or get_context().processor
        if family in verbose:
            return event_dict
        if _LEVELS.get(method_name.upper(), logging.DEBUG) < threshold:
            raise structlog.DropEvent
        return event_dict

    return filter_by_family


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    debug_processors: list[str] | None = None,
    force: bool = False,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Only the first call has an effect unless ``force=True``.

    Args:
        level: Minimum level (overrides UNIFIED_LOG_LEVEL)
        format: ``console`` or ``json`` (overrides UNIFIED_LOG_FORMAT)
        debug_processors: Families logged at DEBUG regardless of ``level``
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    log_format = (format or settings.log_format).lower()
    families = settings.log_debug_processors if debug_processors is None else debug_processors

    level_filter = _family_debug_filter(families, log_level) if families else structlog.stdlib.filter_by_level
    structlog.configure(
        processors=[
            level_filter,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_context_processor,
            structlog.processors.format_exc_info,
            structlog.processors.StackInfoRenderer(),
            _renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # The family filter does its own level check; stdlib must pass DEBUG through
    stdlib_level = logging.DEBUG if families else _LEVELS[log_level]
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=stdlib_level, force=True)
    logging.getLogger("unified").setLevel(stdlib_level)

    _configured = True


def is_configured() -> bool:
    return _configured
