"""Tests for the context variable scope accessor."""

import contextvars
import threading

import pytest

from lightwire.exceptions import LightwireScopeError
from lightwire.lifecycles import ExternallyScopedLifecycle
from lightwire.scope import MISSING, ContextVarScopeAccessor


class TestContextVarScopeAccessor:
    def test_no_scope_outside_block(self) -> None:
        accessor = ContextVarScopeAccessor()

        assert accessor.current_token is None

    def test_enter_scope_sets_and_resets_token(self) -> None:
        accessor = ContextVarScopeAccessor()

        with accessor.enter_scope("request-1") as token:
            assert token == "request-1"
            assert accessor.current_token == "request-1"

        assert accessor.current_token is None

    def test_generated_tokens_are_distinct(self) -> None:
        accessor = ContextVarScopeAccessor()

        with accessor.enter_scope() as first:
            pass
        with accessor.enter_scope() as second:
            pass

        assert first != second

    def test_get_instance_returns_missing_until_set(self) -> None:
        accessor = ContextVarScopeAccessor()
        lifecycle = ExternallyScopedLifecycle(accessor)
        instance = object()

        with accessor.enter_scope():
            assert accessor.get_instance(lifecycle) is MISSING
            assert accessor.set_instance(lifecycle, instance) is instance
            assert accessor.get_instance(lifecycle) is instance

    def test_set_instance_keeps_first_stored(self) -> None:
        accessor = ContextVarScopeAccessor()
        lifecycle = ExternallyScopedLifecycle(accessor)
        first = object()

        with accessor.enter_scope():
            accessor.set_instance(lifecycle, first)

            assert accessor.set_instance(lifecycle, object()) is first

    def test_access_outside_scope_raises(self) -> None:
        accessor = ContextVarScopeAccessor()
        lifecycle = ExternallyScopedLifecycle(accessor)

        with pytest.raises(LightwireScopeError):
            accessor.get_instance(lifecycle)

    def test_instances_dropped_when_scope_ends(self) -> None:
        accessor = ContextVarScopeAccessor()
        lifecycle = ExternallyScopedLifecycle(accessor)

        with accessor.enter_scope("request"):
            accessor.set_instance(lifecycle, object())
        with accessor.enter_scope("request"):
            assert accessor.get_instance(lifecycle) is MISSING

    def test_nested_scopes_are_isolated(self) -> None:
        accessor = ContextVarScopeAccessor()
        lifecycle = ExternallyScopedLifecycle(accessor)
        outer = object()

        with accessor.enter_scope("outer"):
            accessor.set_instance(lifecycle, outer)
            with accessor.enter_scope("inner"):
                assert accessor.get_instance(lifecycle) is MISSING
            assert accessor.get_instance(lifecycle) is outer

    def test_thread_joining_same_token_shares_instances(self) -> None:
        accessor = ContextVarScopeAccessor()
        lifecycle = ExternallyScopedLifecycle(accessor)
        instance = object()
        seen: list[object] = []

        def worker() -> None:
            with accessor.enter_scope("request"):
                seen.append(accessor.get_instance(lifecycle))

        with accessor.enter_scope("request"):
            accessor.set_instance(lifecycle, instance)
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen == [instance]

    def test_copied_context_sees_scope(self) -> None:
        accessor = ContextVarScopeAccessor()
        lifecycle = ExternallyScopedLifecycle(accessor)
        instance = object()

        with accessor.enter_scope():
            accessor.set_instance(lifecycle, instance)
            context = contextvars.copy_context()

            assert context.run(accessor.get_instance, lifecycle) is instance
