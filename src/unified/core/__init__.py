"""Unified Core -- foundations shared by every processor family.

Architecture::

    errors.py      Structured error hierarchy (UnifiedError, ExpectedNodeError)
    settings.py    Environment-driven settings (pydantic-settings)
    vfile.py       Carrier file passed through all three stages
    inherit.py     Per-processor Parser/Compiler subclass derivation

Submodules are imported directly (``from unified.core.vfile import VFile``);
only the error hierarchy is re-exported here.
"""

from unified.core.errors import (
    CompileError,
    ErrorCategory,
    ErrorContext,
    ExpectedNodeError,
    ParseError,
    ProcessorConfigError,
    TransformError,
    UnifiedError,
    categorize_error,
)

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "UnifiedError",
    "ExpectedNodeError",
    "ParseError",
    "TransformError",
    "CompileError",
    "ProcessorConfigError",
    "categorize_error",
]
