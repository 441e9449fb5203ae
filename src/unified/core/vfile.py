"""
Virtual file - the carrier passed through parse, transform and compile.

A ``VFile`` bundles the text being processed with its (optional) path,
the diagnostics reported against it, and a namespaced metadata bag in
which each processor family keeps the tree it parsed.

Manifesto:
    Stages are decoupled: parse may happen in one call, transform in a
    second and compile in a third.  The file is the one object all three
    share, so it is where the tree is parked between calls.

Examples:
    >>> file = VFile({"contents": "# hi", "filename": "readme", "extension": "md"})
    >>> file.file_path()
    'readme.md'
    >>> file.namespace("markdown")["tree"] = {"type": "root"}
    >>> VFile.coerce(file) is file
    True

Tags:
    vfile, carrier, diagnostics, namespace, unified-core

Doc-Types:
    api-reference
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from unified.framework.logging.context import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Point:
    """A place in a file: 1-indexed line and column."""

    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        return f"{self.line or 1}:{self.column or 1}"


def _stringify_position(position: Any) -> str:
    """Render a point, a ``{start, end}`` range or a node carrying ``position``."""
    if position is None:
        return "1:1"
    if isinstance(position, Mapping):
        if "position" in position:
            return _stringify_position(position["position"])
        if "start" in position:
            start = _stringify_position(position["start"])
            end = _stringify_position(position.get("end")) if position.get("end") else start
            return f"{start}-{end}"
        return str(Point(position.get("line"), position.get("column")))
    if isinstance(position, Point):
        return str(position)
    return _stringify_position(getattr(position, "position", None))


def _start_point(position: Any) -> Point:
    if position is None:
        return Point()
    if isinstance(position, Point):
        return position
    if isinstance(position, Mapping):
        if "position" in position:
            return _start_point(position["position"])
        if "start" in position:
            return _start_point(position["start"])
        return Point(position.get("line"), position.get("column"))
    return _start_point(getattr(position, "position", None))


class VFileMessage(Exception):
    """
    A diagnostic reported against a file.

    Raised by ``VFile.fail`` and collected on ``VFile.messages``.  The
    ``name`` is the ``line:column`` (or range) the message points at.
    """

    def __init__(
        self,
        reason: str | BaseException,
        position: Any = None,
        *,
        file: str = "",
        fatal: bool | None = False,
    ):
        if isinstance(reason, BaseException):
            self.cause: BaseException | None = reason
            reason = str(reason)
        else:
            self.cause = None
        super().__init__(reason)
        self.reason = reason
        self.name = _stringify_position(position)
        start = _start_point(position)
        self.line = start.line
        self.column = start.column
        self.file = file
        self.fatal = fatal

    def __str__(self) -> str:
        prefix = f"{self.file}:{self.name}" if self.file else self.name
        return f"{prefix}: {self.reason}"


class VFile:
    """
    In-memory file with contents, path parts, diagnostics and namespaces.

    ``VFile(options)`` accepts nothing (empty file), a string (contents),
    a mapping of ``contents``/``filename``/``directory``/``extension``, or
    another ``VFile`` (copied).  Use ``VFile.coerce`` to get a file while
    keeping an existing one untouched.

    A ``VFile`` has no ``type`` attribute; the engine tells syntax trees
    from files by probing for one.
    """

    def __init__(self, options: str | Mapping[str, Any] | VFile | None = None):
        self.contents: str = ""
        self.filename: str | None = None
        self.directory: str | None = None
        self.extension: str | None = None
        self.quiet: bool = False
        self.messages: list[VFileMessage] = []
        self._namespaces: dict[str, dict[str, Any]] = {}

        if options is None:
            return
        if isinstance(options, VFile):
            self.contents = options.contents
            self.filename = options.filename
            self.directory = options.directory
            self.extension = options.extension
            self.quiet = options.quiet
            self.messages = list(options.messages)
            self._namespaces = copy.deepcopy(options._namespaces)
        elif isinstance(options, str):
            self.contents = options
        elif isinstance(options, Mapping):
            self.contents = options.get("contents") or ""
            self.filename = options.get("filename")
            self.directory = options.get("directory")
            self.extension = options.get("extension")
        else:
            raise TypeError(f"Cannot create a VFile from {type(options).__name__}")

    @classmethod
    def coerce(cls, value: Any = None) -> VFile:
        """Return ``value`` when it already is a file, otherwise wrap it."""
        if isinstance(value, VFile):
            return value
        return cls(value)

    # =========================================================================
    # Namespaces
    # =========================================================================

    def namespace(self, key: str) -> dict[str, Any]:
        """Get the mutable metadata bag stored under ``key``."""
        return self._namespaces.setdefault(key, {})

    def has_namespace(self, key: str) -> bool:
        return key in self._namespaces

    # =========================================================================
    # Paths
    # =========================================================================

    def file_path(self) -> str:
        """Get the full path: directory, filename and extension."""
        if not self.filename:
            return ""
        path = self.filename
        if self.extension:
            path = f"{path}.{self.extension}"
        if self.directory:
            path = f"{self.directory.rstrip('/')}/{path}"
        return path

    def move(
        self,
        *,
        filename: str | None = None,
        directory: str | None = None,
        extension: str | None = None,
    ) -> VFile:
        """Change path parts; parts left as ``None`` are kept."""
        if filename is not None:
            self.filename = filename
        if directory is not None:
            self.directory = directory
        if extension is not None:
            self.extension = extension
        return self

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def message(self, reason: str | BaseException, position: Any = None) -> VFileMessage:
        """Create a message bound to this file without recording it."""
        return VFileMessage(reason, position, file=self.file_path())

    def warn(self, reason: str | BaseException, position: Any = None) -> VFileMessage:
        """Record a non-fatal message."""
        message = self.message(reason, position)
        message.fatal = False
        self.messages.append(message)
        return message

    def fail(self, reason: str | BaseException, position: Any = None) -> VFileMessage:
        """
        Record a fatal message.

        Raises the message unless the file is ``quiet``, in which case it
        is only recorded and returned.
        """
        message = self.message(reason, position)
        message.fatal = True
        self.messages.append(message)
        log.debug("vfile.fail", file_path=message.file or None, reason=message.reason, at=message.name)
        if not self.quiet:
            raise message
        return message

    def has_failed(self) -> bool:
        return any(message.fatal for message in self.messages)

    def __str__(self) -> str:
        return self.contents

    def __repr__(self) -> str:
        path = self.file_path()
        return f"VFile({path!r})" if path else f"VFile(contents={self.contents[:20]!r})"
