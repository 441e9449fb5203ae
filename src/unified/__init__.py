"""
Unified - Parse / Transform / Compile / Repeat.

A processing engine that composes an independently written Parser, an
independently written Compiler and any number of tree transformers into
one reusable pipeline.

- unified.processor: ``unified()`` factory and the dual-mode ``Processor``
- unified.pipeline: the parse → run → stringify plan behind ``process``
- unified.core: errors, settings, the ``VFile`` carrier, subclass derivation
- unified.framework: the ordered middleware runner and structured logging
"""

__version__ = "3.0.0"

from unified.core.errors import (
    CompileError,
    ErrorCategory,
    ExpectedNodeError,
    ParseError,
    ProcessorConfigError,
    TransformError,
    UnifiedError,
)
from unified.core.vfile import VFile, VFileMessage
from unified.framework.logging import configure_logging
from unified.pipeline import ProcessResult
from unified.processor import Processor, is_node, unified

__all__ = [
    "__version__",
    # Factory
    "unified",
    "Processor",
    "ProcessResult",
    "is_node",
    # Carrier
    "VFile",
    "VFileMessage",
    # Errors
    "ErrorCategory",
    "UnifiedError",
    "ExpectedNodeError",
    "ParseError",
    "TransformError",
    "CompileError",
    "ProcessorConfigError",
    # Logging
    "configure_logging",
]
