"""
Processor families - parse, transform, compile, repeat.

``unified()`` turns a Parser class, a Compiler class and a namespace key
into a *processor family*: a ``Processor`` subclass whose instances run
text through parse → transformers → compile.

Every method works on the class and on an instance alike::

    Markdown = unified(name="markdown", parser=MarkdownParser, compiler=HtmlCompiler)

    Markdown.use(add_toc)                 # the family's memoised default instance
    processor = Markdown().use(slugify)   # an independent instance
    result = await processor.process("# Title")

Isolation:
    Each instance owns its transformer registry and its own subclasses
    of the family's Parser and Compiler, so a plugin that registers a
    grammar rule on ``processor.Parser`` never reaches siblings, the
    family's default instance, or the classes handed to ``unified()``.

Trees between calls:
    ``parse`` parks the tree on the carrier file under the family's
    namespace key; ``run`` and ``stringify`` fall back to that slot when
    called without a tree, so the three stages can be driven by separate
    calls sharing one ``VFile``.

Manifesto:
    Parsers, compilers and plugins are authored independently.  The
    processor is the only thing that knows about all of them, and it
    knows as little as it can: a tree is anything with a ``type``.

Tags:
    unified-core, processor, plugins, parse, transform, compile

Doc-Types:
    api-reference
"""

from __future__ import annotations

import copy
import functools
import inspect
import types
from collections.abc import Callable, Mapping
from typing import Any, ClassVar

from unified.core.errors import ExpectedNodeError, ProcessorConfigError
from unified.core.inherit import derive_subclass
from unified.core.vfile import VFile
from unified.framework.logging import get_logger, log_step
from unified.framework.ware import AttachWare, bail
from unified.pipeline import ProcessResult
from unified.pipeline import process as run_pipeline

log = get_logger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def is_node(value: Any) -> bool:
    """
    Whether ``value`` looks like a syntax tree.

    Mappings are checked for a truthy ``"type"`` key, anything else for a
    truthy ``type`` attribute.  This is the only thing the engine knows
    about trees.
    """
    if value is None:
        return False
    if isinstance(value, Mapping):
        return bool(value.get("type"))
    return bool(getattr(value, "type", None))


def _resolve_tree(name: str, tree: Any, file: VFile) -> Any:
    """
    Pick the tree for ``run``/``stringify``.

    An explicit tree wins and is parked in the namespace slot only when
    the slot is empty; otherwise the slot's tree is used.
    """
    space = file.namespace(name)

    if tree is None:
        tree = space.get("tree")
    elif space.get("tree") is None:
        space["tree"] = tree

    if tree is None:
        raise ExpectedNodeError(tree).with_context(processor=name, file_path=file.file_path() or None)

    return tree


class dualmethod:
    """
    Method usable on the family class and on an instance.

    On an instance it binds to that instance.  On the class it binds to
    the family's default instance, resolved when the method is called.
    """

    def __init__(self, func: Callable[..., Any]):
        self.__func__ = func
        functools.update_wrapper(self, func)

    def __get__(self, instance: Processor | None, owner: type[Processor]) -> Callable[..., Any]:
        if instance is not None:
            return types.MethodType(self.__func__, instance)

        func = self.__func__

        @functools.wraps(func)
        def bound_to_default(*args: Any, **kwargs: Any) -> Any:
            return func(owner.default(), *args, **kwargs)

        return bound_to_default


# =============================================================================
# Processor
# =============================================================================


class Processor:
    """
    Base class of every processor family.

    Families are created with ``unified()``; the base class itself has no
    Parser or Compiler and cannot process anything.

    Class attributes (set per family):
        name: Namespace key under which trees are parked on carrier files
        Parser: Class built as ``Parser(file, settings, processor)``
            exposing ``parse()`` (awaitable or plain)
        Compiler: Class built as ``Compiler(file, settings, processor)``
            exposing ``compile()``
        data: Default metadata, deep-copied into each instance

    Instance attributes:
        ware: The transformer registry, bound to this instance
        Parser / Compiler: This instance's private subclasses
        data: This instance's copy of the family data (or None)
    """

    name: ClassVar[str] = ""
    Parser: type | None = None
    Compiler: type | None = None
    data: Any = None

    def __new__(cls, processor: Processor | None = None):
        if isinstance(processor, cls):
            return processor
        return super().__new__(cls)

    def __init__(self, processor: Processor | None = None):
        if processor is self:
            return

        family = type(self)
        self.ware = AttachWare(context=self)
        self.Parser = derive_subclass(family.Parser) if family.Parser is not None else None
        self.Compiler = derive_subclass(family.Compiler) if family.Compiler is not None else None

        if family.data is not None:
            self.data = copy.deepcopy(family.data)

        log.debug("processor.created", processor=family.name)

    # =========================================================================
    # Instances
    # =========================================================================

    @classmethod
    def default(cls) -> Processor:
        """
        The family's default instance, created on first use.

        Each family, including Python subclasses of a family, has its own.
        """
        instance = cls.__dict__.get("_default")
        if instance is None:
            instance = cls()
            cls._default = instance
        return instance

    @classmethod
    def ensure(cls, value: Any = None) -> Processor:
        """Return ``value`` if it is an instance of this family, else the default instance."""
        return value if isinstance(value, cls) else cls.default()

    # =========================================================================
    # Plugins
    # =========================================================================

    @dualmethod
    def use(self, transformer: Callable[..., Any], *args: Any) -> Processor:
        """
        Register a transformer, run after all previously registered ones.

        ``args`` are bound in front of the transformer's runtime arguments
        (``tree, file`` and, for continuation-style transformers,
        ``next``).  Only required positional parameters count towards
        ``next``: ``def t(tree, file, options=None)`` completes by
        returning.  A transformer declaring just ``tree`` gets just the
        tree.  A keyword-only ``processor`` parameter receives this
        instance.  Registering the same transformer twice runs it twice.
        """
        self.ware.use(transformer, *args)
        log.debug("processor.use", processor=self.name, transformers=len(self.ware))
        return self

    @dualmethod
    def attach(self, attacher: Any, *options: Any) -> Processor:
        """
        Apply an attacher: ``attacher(processor, *options)``.

        The attacher may configure this instance (e.g. extend
        ``processor.Parser``) and may return a transformer, which is
        registered as if passed to ``use``.  A list of attachers is
        applied in order with the same options.
        """
        self.ware.attach(attacher, *options)
        log.debug("processor.attach", processor=self.name, transformers=len(self.ware))
        return self

    # =========================================================================
    # Parse
    # =========================================================================

    @dualmethod
    def create_parser(self, value: Any = None, settings: Mapping[str, Any] | None = None) -> Any:
        """Build this instance's Parser for ``value`` (text or ``VFile``)."""
        return self.Parser(VFile.coerce(value), settings, self)

    @dualmethod
    async def parse(self, value: Any = None, settings: Mapping[str, Any] | None = None) -> Any:
        """
        Parse text or a ``VFile`` into a syntax tree.

        The tree is stored on the file's namespace slot, replacing any
        tree already there.  Parser errors propagate unchanged.
        """
        file = VFile.coerce(value)

        with log_step("processor.parse", processor=self.name, stage="parse", file_path=file.file_path() or None):
            tree = self.create_parser(file, settings).parse()
            if inspect.isawaitable(tree):
                tree = await tree

        file.namespace(self.name)["tree"] = tree
        return tree

    # =========================================================================
    # Transform
    # =========================================================================

    @dualmethod
    def run(
        self,
        tree: Any = None,
        file: Any = None,
        done: Callable[..., Any] | None = None,
    ) -> Any:
        """
        Run every registered transformer over a tree.

        Accepts ``run(tree)``, ``run(tree, file)``, ``run(tree, done)``,
        ``run(tree, file, done)``, ``run(file)`` and ``run(file, done)``.
        A first argument without a ``type`` is taken as the file.

        Returns the tree straight away; transformers that complete later
        report through ``done(error, tree, file)``.  Without ``done`` any
        transformer error is raised (``bail``): to the caller when it
        happens before ``run`` returns, otherwise (an async transformer
        failing on a running loop) to the loop's exception handler, since
        no caller is left to receive it.  Pass ``done`` or use ``process``
        to observe late failures.

        Raises:
            ExpectedNodeError: Neither the arguments nor the file's
                namespace slot hold a tree
        """
        if callable(file):
            done, file = file, None

        if file is None and tree is not None and not is_node(tree):
            file, tree = tree, None

        file = VFile.coerce(file)
        tree = _resolve_tree(self.name, tree, file)

        if not callable(done):
            done = bail

        log.debug("processor.run.start", processor=self.name, transformers=len(self.ware))

        if len(self.ware):
            self.ware.run(tree, file, done)
        else:
            done(None, tree, file)

        return tree

    # =========================================================================
    # Compile
    # =========================================================================

    @dualmethod
    def create_compiler(self, file: Any = None, settings: Mapping[str, Any] | None = None) -> Any:
        """Build this instance's Compiler for ``file``."""
        return self.Compiler(VFile.coerce(file), settings, self)

    @dualmethod
    def stringify(self, tree: Any = None, file: Any = None, settings: Mapping[str, Any] | None = None) -> Any:
        """
        Compile a tree into output.

        Accepts ``stringify(tree)``, ``stringify(tree, settings)``,
        ``stringify(tree, file, settings)`` and ``stringify(file, ...)``.
        A second argument that is not a ``VFile`` with no third argument
        is taken as settings.  Returns whatever ``compile()`` returns.

        Raises:
            ExpectedNodeError: Neither the arguments nor the file's
                namespace slot hold a tree
        """
        if settings is None and not isinstance(file, VFile):
            settings, file = file, None

        if file is None and tree is not None and not is_node(tree):
            file, tree = tree, None

        file = VFile.coerce(file)
        tree = _resolve_tree(self.name, tree, file)

        with log_step(
            "processor.stringify",
            level="debug",
            processor=self.name,
            stage="stringify",
            file_path=file.file_path() or None,
        ):
            return self.create_compiler(file, settings).compile()

    # =========================================================================
    # Process
    # =========================================================================

    @dualmethod
    async def process(self, value: Any = None, settings: Mapping[str, Any] | None = None) -> ProcessResult:
        """
        Parse, transform and compile in one go.

        ``value`` may be text, a ``VFile``, or an already parsed tree
        (which skips parsing and is paired with a new empty file).

        Returns:
            ProcessResult with the file and the compiled result

        Raises:
            Whatever a stage raised, unchanged; no partial result
        """
        return await run_pipeline(self, value, settings)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, transformers={len(self.ware)})"


# =============================================================================
# Factory
# =============================================================================


def unified(
    name: str,
    parser: type,
    compiler: type,
    data: Any = None,
) -> type[Processor]:
    """
    Build a processor family.

    Args:
        name: Namespace key for trees parked on carrier files
        parser: Parser class, built as ``parser(file, settings, processor)``
        compiler: Compiler class, built as ``compiler(file, settings, processor)``
        data: Optional default metadata, deep-copied per instance

    Returns:
        A new ``Processor`` subclass

    Raises:
        ProcessorConfigError: ``name`` is empty or ``parser``/``compiler``
            are not classes
    """
    if not isinstance(name, str) or not name:
        raise ProcessorConfigError("Processor name must be a non-empty string", option="name")
    for option, value in (("parser", parser), ("compiler", compiler)):
        if not isinstance(value, type):
            raise ProcessorConfigError(
                f"Expected a class for {option}, got {type(value).__name__}",
                option=option,
            )

    family = type(
        f"{name.title().replace('-', '').replace('_', '')}Processor",
        (Processor,),
        {
            "__module__": __name__,
            "__doc__": f"Processor family {name!r}.",
            "name": name,
            "Parser": parser,
            "Compiler": compiler,
            "data": data,
        },
    )
    log.debug("processor.family", processor=name, parser=parser.__name__, compiler=compiler.__name__)
    return family
