"""
Logging context carried across parse, run and stringify.

The processor family, the stage and the carrier file's path are kept in
a ``ContextVar`` and merged into every structlog event, so stage code
never threads them through its own calls.  Each asyncio task sees the
context it was created with, which keeps concurrent ``process`` calls
apart.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

import structlog


def new_span_id() -> str:
    """Short random span identifier (8 hex chars)."""
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class LogContext:
    """
    Fields attached to every log entry.

    processor: Namespace key of the processor family
    stage: "parse", "run", "stringify" or "process"
    file_path: Path of the carrier file, when it has one
    span_id / parent_span_id: Nesting of ``log_step`` blocks
    """

    processor: str | None = None
    stage: str | None = None
    file_path: str | None = None
    span_id: str | None = None
    parent_span_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    def merge(self, **values: Any) -> "LogContext":
        """Copy with ``values`` applied; unknown keys and ``None`` values are skipped."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in values.items() if k in known and v is not None})


_EMPTY = LogContext()
_current: ContextVar[LogContext] = ContextVar("unified_log_context", default=_EMPTY)


def get_context() -> LogContext:
    return _current.get()


def set_context(**values: Any) -> LogContext:
    """Replace the whole context; see ``bind_context`` to add to it."""
    ctx = LogContext(**values)
    _current.set(ctx)
    return ctx


def bind_context(**values: Any) -> LogContext:
    ctx = get_context().merge(**values)
    _current.set(ctx)
    return ctx


def clear_context() -> None:
    _current.set(_EMPTY)


class ContextToken:
    """Returned by ``push_context``; ``restore()`` brings back the previous context."""

    __slots__ = ("_token",)

    def __init__(self, token: Token[LogContext]):
        self._token = token

    def restore(self) -> None:
        _current.reset(self._token)


def push_context(**values: Any) -> ContextToken:
    """Merge ``values`` into the context until the returned token is restored."""
    return ContextToken(_current.set(get_context().merge(**values)))


@contextmanager
def scoped_context(**values: Any) -> Iterator[LogContext]:
    """``push_context`` for the duration of a ``with`` block."""
    token = push_context(**values)
    try:
        yield get_context()
    finally:
        token.restore()


def add_context_processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Structlog processor merging the current context; keys already on the event win."""
    for key, value in get_context().to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)
