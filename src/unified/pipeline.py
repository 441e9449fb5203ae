"""
The end-to-end pipeline behind ``Processor.process``.

One fixed plan, shared by every processor family, run on a ``Ware``
with a fresh ``PipelineContext`` per call:

1. **parse** - skipped when the context already holds a tree (passed
   in directly, or left on the file's namespace slot by an earlier run)
2. **run** - the processor's transformers; the pipeline waits for
   their callback, however late it fires
3. **stringify** - compile the tree; an awaitable result is awaited

Manifesto:
    ``parse``, ``run`` and ``stringify`` each have their own calling
    convention.  ``process`` hides all three behind a single awaitable
    so callers never deal with callbacks.

Tags:
    unified-core, pipeline, process, asyncio

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from unified.core.vfile import VFile
from unified.framework.logging import get_logger, log_step
from unified.framework.ware import Ware

if TYPE_CHECKING:
    from unified.processor import Processor

log = get_logger(__name__)


@dataclass
class PipelineContext:
    """
    State threaded through the three pipeline steps of one ``process`` call.

    Attributes:
        processor: The instance being run
        settings: Settings handed to the Parser and Compiler
        file: The carrier file
        tree: The syntax tree, once known
        result: The compiled output, once known
    """

    processor: Processor
    settings: Mapping[str, Any] = field(default_factory=dict)
    file: VFile = field(default_factory=VFile)
    tree: Any = None
    result: Any = None


@dataclass
class ProcessResult:
    """What ``process`` resolves with: the (possibly mutated) file and the compiled output."""

    file: VFile
    result: Any


# =============================================================================
# Steps
# =============================================================================


def parse_step(ctx: PipelineContext) -> Any:
    """Parse unless a tree is already known."""
    if ctx.tree is None:
        ctx.tree = ctx.file.namespace(ctx.processor.name).get("tree")
    if ctx.tree is not None:
        return None

    async def parse() -> None:
        ctx.tree = await ctx.processor.parse(ctx.file, ctx.settings)

    return parse()


def run_step(ctx: PipelineContext, next_: Callable[..., Any]) -> None:
    """Run transformers; completes when they report back."""
    ctx.processor.run(ctx.tree, ctx.file, next_)


def stringify_step(ctx: PipelineContext) -> Any:
    """Compile the tree onto ``ctx.result``."""
    result = ctx.processor.stringify(ctx.tree, ctx.file, ctx.settings)
    if not inspect.isawaitable(result):
        ctx.result = result
        return None

    async def settle() -> None:
        ctx.result = await result

    return settle()


pipeline = Ware().use(parse_step).use(run_step).use(stringify_step)


# =============================================================================
# Entry point
# =============================================================================


async def process(
    processor: Processor,
    value: Any = None,
    settings: Mapping[str, Any] | None = None,
) -> ProcessResult:
    """
    Run ``value`` through parse → transform → compile on ``processor``.

    Text and ``VFile`` input is (re)used as the carrier file; any other
    value is taken as a parsed tree and paired with a new empty file.
    The first failing step's error is raised unchanged.
    """
    ctx = PipelineContext(processor=processor, settings=settings or {})
    if isinstance(value, (str, VFile)):
        ctx.file = VFile.coerce(value)
    else:
        ctx.tree = value

    loop = asyncio.get_running_loop()
    finished: asyncio.Future[PipelineContext] = loop.create_future()

    def done(error: BaseException | None = None, *_: Any) -> None:
        if finished.done():
            return
        if error is not None:
            finished.set_exception(error)
        else:
            finished.set_result(ctx)

    with log_step(
        "pipeline.process",
        processor=processor.name,
        stage="process",
        file_path=ctx.file.file_path() or None,
        parsed=ctx.tree is not None,
    ):
        pipeline.run(ctx, done)
        await finished

    return ProcessResult(file=ctx.file, result=ctx.result)
