"""
Stage timing.

``log_step`` wraps a stage (parse, stringify, a whole ``process`` call)
in a span: it pushes the stage onto the logging context, logs
``<event>.start`` at DEBUG and ``<event>.end`` with ``duration_ms`` when
the block finishes.  A failing block logs ``<event>.error`` and the
exception continues unchanged.  Nested blocks link through
``parent_span_id``.

``timed_block`` measures without logging.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from unified.framework.logging.context import (
    get_context,
    get_logger,
    new_span_id,
    scoped_context,
)

# log_step keywords routed to the context rather than the event
_CONTEXT_KEYS = frozenset({"processor", "stage", "file_path"})


@dataclass
class TimingResult:
    """One timed span and the metrics reported with it."""

    step: str
    span_id: str = field(default_factory=new_span_id)
    parent_span_id: str | None = None
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None

    @property
    def duration_ms(self) -> float:
        end = time.perf_counter() if self.ended_at is None else self.ended_at
        return (end - self.started_at) * 1000

    @property
    def status(self) -> str:
        return "ok" if self.error is None else "error"

    def stop(self) -> "TimingResult":
        if self.ended_at is None:
            self.ended_at = time.perf_counter()
        return self

    def add_metric(self, key: str, value: Any) -> "TimingResult":
        self.metrics[key] = value
        return self

    def set_error(self, error: BaseException) -> "TimingResult":
        self.error = error
        return self

    def fields(self) -> dict[str, Any]:
        """Event fields: duration, span ids, error details when failed, then metrics."""
        out: dict[str, Any] = {"duration_ms": round(self.duration_ms, 2), "span_id": self.span_id}
        if self.parent_span_id:
            out["parent_span_id"] = self.parent_span_id
        if self.error is not None:
            out.update(
                status="error",
                error_type=type(self.error).__name__,
                error_message=str(self.error),
            )
        out.update(self.metrics)
        return out


@contextmanager
def timed_block(step: str = "unnamed") -> Iterator[TimingResult]:
    timer = TimingResult(step=step, parent_span_id=get_context().span_id)
    try:
        yield timer
    finally:
        timer.stop()


@contextmanager
def log_step(event: str, log_start: bool = True, level: str = "info", **values: Any) -> Iterator[TimingResult]:
    """
    Time and log a stage.

    ``processor``, ``stage`` and ``file_path`` are pushed onto the logging
    context for the block; every other keyword is reported as a metric.
    ``level`` is the level of the ``.end`` event.

    Usage:
        with log_step("processor.parse", processor="markdown", stage="parse") as span:
            tree = parser.parse()
            span.add_metric("children", len(tree["children"]))
    """
    log = get_logger("unified.timing")
    scoped = {key: values.pop(key) for key in list(values) if key in _CONTEXT_KEYS}
    span = TimingResult(step=event, parent_span_id=get_context().span_id, metrics=values)

    with scoped_context(span_id=span.span_id, parent_span_id=span.parent_span_id, **scoped):
        if log_start:
            start = {"span_id": span.span_id, **span.metrics}
            if span.parent_span_id:
                start["parent_span_id"] = span.parent_span_id
            log.debug(f"{event}.start", **start)
        try:
            yield span
        except Exception as error:
            span.stop().set_error(error)
            log.error(f"{event}.error", **span.fields())
            raise
        span.stop()

    getattr(log, level)(f"{event}.end", **span.fields())
