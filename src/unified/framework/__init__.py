"""
Unified Framework - execution machinery shared by every processor family.

This module provides:
- The ordered middleware runner that drives transformers and the pipeline
- Structured logging with stage context
"""

from unified.framework.logging import configure_logging, get_logger
from unified.framework.ware import AttachWare, Ware, WareStep, bail

__all__ = [
    # Runner
    "Ware",
    "AttachWare",
    "WareStep",
    "bail",
    # Logging
    "configure_logging",
    "get_logger",
]
