"""
Structured error types for the unified processing engine.

Every error the engine raises itself derives from ``UnifiedError`` and
carries a category, structured context and an optional chained cause.
Collaborator errors (Parser, Compiler, transformers) are never wrapped:
they travel to the caller by identity, so the classes below that name
those stages exist for plugin authors to raise, not for the core to
translate into.

Manifesto:
    - **Typed hierarchy:** one class per pipeline stage
    - **No translation:** the core surfaces collaborator failures unchanged
    - **Rich context:** processor name, stage and file path travel with the error
    - **Error chaining:** original exceptions are preserved as ``cause``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                      UnifiedError                          │
        │          (category, context, cause, to_dict)               │
        ├───────────────────────────────────────────────────────────┤
        │                                                            │
        │  ExpectedNodeError   ParseError    TransformError          │
        │  (PIPELINE)          (PARSE)       (TRANSFORM)             │
        │                                                            │
        │  CompileError        ProcessorConfigError                  │
        │  (COMPILE)           (CONFIG)                              │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = ExpectedNodeError(None)
    >>> str(error)
    'Expected node, got None'
    >>> error.category
    <ErrorCategory.PIPELINE: 'PIPELINE'>

    >>> error = TransformError("bad heading").with_context(processor="markdown")
    >>> error.context.processor
    'markdown'

Tags:
    error-handling, exception-hierarchy, error-context, unified-core

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and logging.

    Categories follow the three pipeline stages, plus the configuration
    performed when a processor family is built:

    - **PARSE:** the Parser could not turn input into a tree
    - **TRANSFORM:** a registered transformer reported a failure
    - **COMPILE:** the Compiler could not render the tree
    - **PIPELINE:** the engine itself could not proceed (missing tree)
    - **CONFIG:** a processor family was built with invalid options
    - **INTERNAL / UNKNOWN:** everything else
    """

    PARSE = "PARSE"
    TRANSFORM = "TRANSFORM"
    COMPILE = "COMPILE"
    PIPELINE = "PIPELINE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        processor: Namespace key of the processor family involved
        stage: Pipeline stage ("parse", "run", "stringify", "process")
        file_path: Path of the carrier file, when it has one
        metadata: Additional key-value pairs
    """

    processor: str | None = None
    stage: str | None = None
    file_path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["processor", "stage", "file_path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class UnifiedError(Exception):
    """
    Base exception for all errors raised by the engine.

    Subclasses set ``default_category``; instances may override it.

    Examples:
        >>> error = UnifiedError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> try:
        ...     raise KeyError("rule")
        ... except KeyError as e:
        ...     error = UnifiedError("Lookup failed", cause=e)
        >>> error.__cause__
        KeyError('rule')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> UnifiedError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TransformError("Unknown directive").with_context(
                processor="markdown",
                directive="toc",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PIPELINE ERRORS
# =============================================================================


class ExpectedNodeError(UnifiedError):
    """
    Raised by ``run`` and ``stringify`` when no syntax tree can be resolved.

    A tree comes either from the explicit argument or from the carrier
    file's namespace slot; when both are empty this is raised
    synchronously, never delivered through a callback.
    """

    default_category = ErrorCategory.PIPELINE

    def __init__(self, node: Any = None, **kwargs: Any):
        self.node = node
        super().__init__(f"Expected node, got {node!r}", **kwargs)


# =============================================================================
# STAGE ERRORS (raised by collaborators, passed through unchanged)
# =============================================================================


class ParseError(UnifiedError):
    """Error a Parser implementation raises for unparseable input."""

    default_category = ErrorCategory.PARSE


class TransformError(UnifiedError):
    """Error a transformer raises or hands to its continuation."""

    default_category = ErrorCategory.TRANSFORM


class CompileError(UnifiedError):
    """Error a Compiler implementation raises for an unrenderable tree."""

    default_category = ErrorCategory.COMPILE


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ProcessorConfigError(UnifiedError):
    """A processor family was built with invalid options."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str, *, option: str | None = None, **kwargs: Any):
        self.option = option
        super().__init__(message, **kwargs)


# =============================================================================
# UTILITIES
# =============================================================================


def categorize_error(error: BaseException) -> ErrorCategory:
    """
    Get the category for any exception.

    UnifiedError subclasses report their own category; anything else is
    UNKNOWN, since the engine never guesses at foreign exception types.
    """
    if isinstance(error, UnifiedError):
        return error.category
    return ErrorCategory.UNKNOWN


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
