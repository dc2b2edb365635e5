from __future__ import annotations

from collections.abc import Hashable, Iterator

import pytest

from lightwire.builder import ContainerBuilder
from lightwire.container import Container
from lightwire.scope import ContextVarScopeAccessor


@pytest.fixture()
def lightwire_builder() -> ContainerBuilder:
    """Create a per-test container builder.

    Override this fixture to declare the registrations a test module needs;
    ``lightwire_container`` builds from it.

    Returns:
        A new ``ContainerBuilder`` with default settings.

    """
    return ContainerBuilder()


@pytest.fixture()
def lightwire_container(lightwire_builder: ContainerBuilder) -> Container:
    """Build a per-test container from ``lightwire_builder``.

    Lifecycle caches are isolated between tests because the container is
    function-scoped unless the fixture is overridden.
    """
    return lightwire_builder.build()


@pytest.fixture()
def lightwire_scope_accessor() -> ContextVarScopeAccessor:
    """Create a scope accessor for externally scoped registrations."""
    return ContextVarScopeAccessor()


@pytest.fixture()
def lightwire_scope(lightwire_scope_accessor: ContextVarScopeAccessor) -> Iterator[Hashable]:
    """Run the test inside a scope of ``lightwire_scope_accessor``.

    Yields:
        The token of the entered scope.

    """
    with lightwire_scope_accessor.enter_scope() as token:
        yield token
