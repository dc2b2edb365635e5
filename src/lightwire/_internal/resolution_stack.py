from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from lightwire.exceptions import LightwireCircularDependencyError

# Per thread (and per task) chain of registration keys currently being built.
_resolution_stack: ContextVar[tuple[Any, ...]] = ContextVar("lightwire_resolution_stack", default=())


@contextmanager
def resolving(key: Any) -> Iterator[None]:
    """Track ``key`` on the current resolution chain while its instance is built.

    Raises:
        LightwireCircularDependencyError: If ``key`` is already being built further
            up the current chain.

    """
    stack = _resolution_stack.get()
    if key in stack:
        raise LightwireCircularDependencyError(key, stack[stack.index(key) :])
    token = _resolution_stack.set((*stack, key))
    try:
        yield
    finally:
        _resolution_stack.reset(token)


__all__ = ["resolving"]
