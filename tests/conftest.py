"""Shared pytest fixtures for lightwire tests."""

import pytest

from lightwire.builder import ContainerBuilder
from lightwire.container import Container
from lightwire.lifecycles import Lifetime


@pytest.fixture()
def builder() -> ContainerBuilder:
    """Builder with the default transient lifecycle and on-the-fly concrete types."""
    return ContainerBuilder()


@pytest.fixture()
def builder_singleton() -> ContainerBuilder:
    """Builder with singleton as the default lifecycle."""
    return ContainerBuilder(Lifetime.SINGLETON)


@pytest.fixture()
def builder_no_autoregister() -> ContainerBuilder:
    """Builder with register_if_missing=False."""
    return ContainerBuilder(register_if_missing=False)


@pytest.fixture()
def container(builder: ContainerBuilder) -> Container:
    """Container built from an empty builder."""
    return builder.build()


@pytest.fixture()
def container_no_autoregister(builder_no_autoregister: ContainerBuilder) -> Container:
    """Container that does not build unregistered concrete types."""
    return builder_no_autoregister.build()
