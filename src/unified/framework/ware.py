"""
Ordered middleware runner with mixed sync/async continuation.

A ``Ware`` holds an ordered list of steps and runs them one at a time
over the same inputs.  Each step decides how it completes:

- **Return** - plain synchronous success (returning an ``Exception``
  instance counts as failure)
- **Awaitable** - returning a coroutine or future defers completion
  until it settles
- **Continuation** - a step declaring one more required positional
  parameter than there are inputs receives ``next`` and completes when
  it calls ``next()`` or ``next(error)``
- **Raise** - failure

A step declaring fewer positional parameters than there are inputs
receives only the leading ones (``def plugin(tree)`` gets the tree).

The first failure skips every remaining step and reaches ``done``.

Manifesto:
    Plugins are written by many hands.  Some are pure tree rewrites,
    some await I/O, some come from callback-style code.  The runner
    lets all of them share one ordered execution without any of them
    knowing how the others complete.

Architecture:
    ::

        run(tree, file, done)
          │
          ├─► step 1 ── return ───────────────┐
          │                                   ▼
          ├─► step 2 ── awaitable ── settle ──┐
          │                                   ▼
          ├─► step 3 ── next(error) ──────────┼─► done(error)
          │                                   ▼
          └─► (no more steps) ───────────────► done(None, tree, file)

Tags:
    unified-core, framework, middleware, continuation, asyncio

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from unified.framework.logging.context import get_logger

log = get_logger(__name__)

Done = Callable[..., Any]


def bail(error: BaseException | None = None, *rest: Any) -> None:
    """Default completion callback: raise ``error`` when there is one."""
    if error is not None:
        raise error


def _describe(fn: Callable[..., Any]) -> str:
    target = fn.func if isinstance(fn, functools.partial) else fn
    return getattr(target, "__qualname__", None) or type(target).__name__


@dataclass
class WareStep:
    """
    A registered step plus what its signature says about how to call it.

    ``required`` counts positional parameters without defaults and decides
    whether the step takes a continuation.  ``accepted`` counts every
    positional parameter; extra inputs beyond it are not passed.  Both
    are ``None`` for steps taking ``*args`` or whose signature is unknown.
    """

    fn: Callable[..., Any]
    name: str = ""
    required: int | None = None
    accepted: int | None = None
    wants_context: bool = False

    @classmethod
    def from_callable(cls, fn: Callable[..., Any]) -> WareStep:
        try:
            sig = inspect.signature(fn)
        except (TypeError, ValueError):
            return cls(fn=fn, name=_describe(fn))

        params = list(sig.parameters.values())
        wants_context = any(
            p.name == "processor" and p.kind == inspect.Parameter.KEYWORD_ONLY for p in params
        )
        if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params):
            return cls(fn=fn, name=_describe(fn), wants_context=wants_context)

        positional = [
            p for p in params if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        ]
        required = sum(1 for p in positional if p.default is inspect.Parameter.empty)
        return cls(
            fn=fn,
            name=_describe(fn),
            required=required,
            accepted=len(positional),
            wants_context=wants_context,
        )

    def takes_next(self, arity: int) -> bool:
        """Whether this step expects a continuation after ``arity`` inputs."""
        return self.required is not None and self.required > arity

    def arguments(self, inputs: tuple[Any, ...]) -> tuple[Any, ...]:
        """The inputs this step can take, in order."""
        if self.accepted is not None and self.accepted < len(inputs):
            return inputs[: self.accepted]
        return inputs


@dataclass
class Ware:
    """
    Ordered runner of steps over shared inputs.

    Attributes:
        context: Object handed to steps declaring a keyword-only
            ``processor`` parameter
        fns: Registered steps, in registration order
    """

    context: Any = None
    fns: list[WareStep] = field(default_factory=list)
    _pending: set[asyncio.Future] = field(default_factory=set, repr=False)

    def use(self, fn: Callable[..., Any], *args: Any) -> Ware:
        """
        Append ``fn`` as the last step.

        ``args`` are bound in front of the runtime inputs, so
        ``use(add_toc, {"depth": 2})`` later calls
        ``add_toc({"depth": 2}, tree, file)``.
        """
        if not callable(fn):
            raise TypeError(f"Expected a callable step, got {type(fn).__name__}")
        step = WareStep.from_callable(functools.partial(fn, *args) if args else fn)
        if args:
            step.name = _describe(fn)
        self.fns.append(step)
        return self

    def __len__(self) -> int:
        return len(self.fns)

    def run(self, *inputs: Any) -> Ware:
        """
        Run every step over ``inputs``; the last argument, when callable,
        is the completion callback ``done(error, *inputs)``.

        Steps that complete while being invoked are driven from a loop,
        so the number of steps is not bounded by the recursion limit.
        Steps registered while a run is in flight are picked up by that
        run when it reaches them.
        """
        done: Done = bail
        if inputs and callable(inputs[-1]):
            done = inputs[-1]
            inputs = inputs[:-1]

        index = 0
        ready = False
        driving = False

        def advance(error: BaseException | None = None, *_: Any) -> None:
            nonlocal ready
            if error is not None:
                done(error)
                return
            ready = True
            if not driving:
                drive()

        def drive() -> None:
            nonlocal index, ready, driving
            driving = True
            try:
                while ready:
                    ready = False
                    if index >= len(self.fns):
                        done(None, *inputs)
                        return
                    step = self.fns[index]
                    index += 1
                    self._invoke(step, inputs, _Continuation(advance, step))
            finally:
                driving = False

        advance()
        return self

    # =========================================================================
    # Step invocation
    # =========================================================================

    def _invoke(self, step: WareStep, inputs: tuple[Any, ...], next_: _Continuation) -> None:
        takes_next = step.takes_next(len(inputs))
        args = (*inputs, next_) if takes_next else step.arguments(inputs)
        kwargs = {"processor": self.context} if step.wants_context else {}

        try:
            result = step.fn(*args, **kwargs)
        except Exception as error:
            if next_.called:
                # Raised by done() through this step's next()
                raise
            log.debug("ware.step.error", step=step.name, error_type=type(error).__name__)
            next_(error)
            return

        if takes_next:
            return

        if isinstance(result, BaseException):
            next_(result)
        elif inspect.isawaitable(result):
            self._settle(step, result, next_)
        else:
            next_()

    def _settle(self, step: WareStep, awaitable: Awaitable[Any], next_: Done) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to schedule on: finish the step before returning
            try:
                result = asyncio.run(_resolve(awaitable))
            except Exception as error:
                log.debug("ware.step.error", step=step.name, error_type=type(error).__name__)
                next_(error)
                return
            next_(result if isinstance(result, BaseException) else None)
            return

        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)

        def settled(done_future: asyncio.Future) -> None:
            self._pending.discard(done_future)
            if done_future.cancelled():
                error: BaseException | None = asyncio.CancelledError(f"step {step.name} was cancelled")
            else:
                error = done_future.exception()
                if error is None and isinstance(done_future.result(), BaseException):
                    error = done_future.result()
            if error is not None:
                log.debug("ware.step.error", step=step.name, error_type=type(error).__name__)

            try:
                next_(error)
            except Exception as unhandled:
                # Nobody awaits a loop callback; done() raising here (bail) is fatal
                loop.call_exception_handler(
                    {
                        "message": f"Unhandled error after step {step.name}; pass a done callback to run() to handle it",
                        "exception": unhandled,
                        "future": done_future,
                    }
                )

        future.add_done_callback(settled)


class AttachWare(Ware):
    """
    A ``Ware`` that also understands attachers.

    An attacher is called once, at registration time, with the context
    and its options.  It may configure the context (for example extend
    ``processor.Parser``) and may return a step to register.
    """

    def __init__(self, context: Any = None):
        super().__init__(context=context)
        self.attachers: list[Callable[..., Any]] = []

    def attach(self, attacher: Callable[..., Any] | Iterable[Callable[..., Any]], *options: Any) -> AttachWare:
        """Apply ``attacher(context, *options)`` and register the step it returns."""
        if not callable(attacher):
            for each in attacher:
                self.attach(each, *options)
            return self

        step = attacher(self.context if self.context is not None else self, *options)
        self.attachers.append(attacher)
        if step is not None:
            self.use(step)
        return self


async def _resolve(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class _Continuation:
    """One-shot ``next`` handed to a step; only the first call advances the run."""

    def __init__(self, advance: Done, step: WareStep):
        self._advance = advance
        self._step = step
        self.called = False

    def __call__(self, error: BaseException | None = None, *rest: Any) -> None:
        if self.called:
            log.warning("ware.next.duplicate", step=self._step.name)
            return
        self.called = True
        self._advance(error, *rest)
