from __future__ import annotations

import itertools
import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from lightwire.exceptions import LightwireScopeError

if TYPE_CHECKING:
    from lightwire.lifecycles import Lifecycle

T = TypeVar("T")

MISSING: Any = object()
"""Returned by ``ScopeAccessorProtocol.get_instance`` when the scope holds no instance."""


class ScopeAccessorProtocol(Protocol):
    """External cache for externally scoped lifecycles.

    Implementations know the ambient scope token (a request identifier, a job
    id, ...) and keep one instance per lifecycle and token. They must be safe to
    call from several threads at once.
    """

    def get_instance(self, lifecycle: Lifecycle) -> Any:
        """Return the instance stored for ``lifecycle`` in the current scope, or ``MISSING``."""
        ...

    def set_instance(self, lifecycle: Lifecycle, instance: T) -> T:
        """Store ``instance`` for ``lifecycle`` in the current scope.

        Returns the instance that ends up stored, which is the earlier one when
        another caller stored first.
        """
        ...


@dataclass(slots=True)
class _ScopeState:
    instances: dict[Lifecycle, Any] = field(default_factory=dict)
    entries: int = 0


class ContextVarScopeAccessor:
    """Scope accessor whose ambient token lives in a ``contextvars.ContextVar``.

    Enter a scope with ``enter_scope``; code running inside the ``with`` block
    (including tasks and threads started with a copied context) shares the
    scope's instances. Entering the same token again, for example from another
    thread handling the same request, joins the existing scope. The scope's
    instances are dropped when its last entry exits.
    """

    _accessor_counter = itertools.count()

    def __init__(self) -> None:
        self._current_token: ContextVar[Hashable | None] = ContextVar(
            f"lightwire_scope_{next(self._accessor_counter)}",
            default=None,
        )
        self._token_counter = itertools.count(1)
        self._scopes: dict[Hashable, _ScopeState] = {}
        self._lock = threading.Lock()

    @property
    def current_token(self) -> Hashable | None:
        """The token of the scope active in the current context, if any."""
        return self._current_token.get()

    @contextmanager
    def enter_scope(self, token: Hashable | None = None) -> Iterator[Hashable]:
        """Activate a scope for the duration of the ``with`` block.

        Args:
            token: Scope identifier; a fresh integer token is generated when omitted.

        Yields:
            The active scope token.

        """
        if token is None:
            token = next(self._token_counter)
        with self._lock:
            state = self._scopes.setdefault(token, _ScopeState())
            state.entries += 1
        context_token = self._current_token.set(token)
        try:
            yield token
        finally:
            self._current_token.reset(context_token)
            with self._lock:
                state.entries -= 1
                if state.entries == 0:
                    del self._scopes[token]

    def get_instance(self, lifecycle: Lifecycle) -> Any:
        with self._lock:
            return self._require_state().instances.get(lifecycle, MISSING)

    def set_instance(self, lifecycle: Lifecycle, instance: T) -> T:
        with self._lock:
            return self._require_state().instances.setdefault(lifecycle, instance)

    def _require_state(self) -> _ScopeState:
        token = self._current_token.get()
        if token is None:
            msg = "Cannot resolve an externally scoped registration outside of a scope."
            raise LightwireScopeError(msg)
        state = self._scopes.get(token)
        if state is None:
            msg = f"Scope {token!r} has already ended."
            raise LightwireScopeError(msg)
        return state


__all__ = ["MISSING", "ContextVarScopeAccessor", "ScopeAccessorProtocol"]
