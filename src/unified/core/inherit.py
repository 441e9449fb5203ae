"""Derive independent subclasses of Parser/Compiler classes.

Plugins commonly extend parsing or compiling by mutating class-level
tables, e.g. ``processor.Parser.block_rules["toc"] = parse_toc``.  Each
processor therefore gets its own subclass of the family's Parser and
Compiler, with every mutable class-level container copied, so those
mutations stay local to the processor that made them.
"""

from __future__ import annotations

import copy
from typing import TypeVar

T = TypeVar("T", bound=type)

_MUTABLE_CONTAINERS = (dict, list, set)


def derive_subclass(base: T) -> T:
    """
    Return a fresh subclass of ``base`` with copied mutable class attributes.

    Dict, list and set attributes found anywhere in ``base``'s MRO are
    shallow-copied into the new class namespace.  Dunder attributes are
    left alone.  The subclass keeps ``base``'s name, qualname and module.
    """
    namespace: dict[str, object] = {}
    seen: set[str] = set()

    for klass in base.__mro__:
        if klass is object:
            continue
        for key, value in vars(klass).items():
            if key in seen:
                continue
            seen.add(key)
            if key.startswith("__") and key.endswith("__"):
                continue
            if isinstance(value, _MUTABLE_CONTAINERS):
                namespace[key] = copy.copy(value)

    namespace["__module__"] = base.__module__
    namespace["__qualname__"] = base.__qualname__
    if base.__doc__:
        namespace["__doc__"] = base.__doc__

    return type(base)(base.__name__, (base,), namespace)  # type: ignore[return-value]
