"""Tracing of the nested steps of generating a GitOpsSet.

Each step of generation (a GitOpsSet, a Matrix, a nested generator) runs in a
named `trace_context`. The names of the running steps are tracked in a
context variable so that log lines show where in a GitOpsSet they come from.
"""

import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter
from typing import Generator

from .exceptions import GitOpsSetsException

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "trace_context",
    "current_steps",
]


_STEPS: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "generation_steps", default=()
)


def current_steps() -> tuple[str, ...]:
    """Return the names of the running generation steps, outermost first."""
    return _STEPS.get()


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    """Log entry, exit and elapsed time of a named step of generation."""
    steps = _STEPS.get() + (name,)
    token = _STEPS.set(steps)
    label = " > ".join(steps)
    marker = "<"
    t1 = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    except GitOpsSetsException:
        marker = "!"
        raise
    finally:
        t2 = perf_counter()
        _STEPS.reset(token)
        _LOGGER.debug("[Trace] %s %s (%0.2fs)", marker, label, (t2 - t1))
