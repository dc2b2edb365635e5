"""Tests for pydantic settings models resolved by the container."""

import pytest
from pydantic import BaseModel
from pydantic_settings import BaseSettings

from lightwire._internal.integrations.pydantic_settings import (
    SETTINGS_BASES,
    is_pydantic_settings_subclass,
)
from lightwire.builder import ContainerBuilder
from lightwire.container import Container
from lightwire.exceptions import LightwireRegistrationNotFoundError
from lightwire.lifecycles import Lifetime
from lightwire.registration import RegistrationKey


class AppSettings(BaseSettings):
    database_url: str = "sqlite://"
    pool_size: int = 5


class PlainModel(BaseModel):
    value: int = 1


class Repository:
    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings


class TestSettingsDetection:
    def test_pydantic_settings_base_is_discovered(self) -> None:
        assert BaseSettings in SETTINGS_BASES

    def test_settings_subclass_is_detected(self) -> None:
        assert is_pydantic_settings_subclass(AppSettings)

    def test_base_and_plain_models_are_not_settings(self) -> None:
        assert not is_pydantic_settings_subclass(BaseSettings)
        assert not is_pydantic_settings_subclass(PlainModel)
        assert not is_pydantic_settings_subclass(AppSettings())
        assert not is_pydantic_settings_subclass(list[int])


class TestSettingsResolution:
    def test_settings_resolve_as_transient(self, container: Container) -> None:
        registrations_before = len(container.registrations)

        first = container.resolve(AppSettings)
        second = container.resolve(AppSettings)

        assert isinstance(first, AppSettings)
        assert first is not second
        assert len(container.registrations) == registrations_before
        assert container.registrations.try_get(RegistrationKey(AppSettings)) is None

    def test_settings_read_environment_on_each_resolution(
        self,
        container: Container,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://db")
        settings = container.resolve(AppSettings)
        monkeypatch.setenv("DATABASE_URL", "postgresql://other")

        assert settings.database_url == "postgresql://db"
        assert container.resolve(AppSettings).database_url == "postgresql://other"

    def test_settings_injected_into_constructors(self, container: Container) -> None:
        repository = container.resolve(Repository)

        assert isinstance(repository.settings, AppSettings)
        assert repository.settings.pool_size == 5

    def test_singleton_registration_loads_once(
        self,
        builder: ContainerBuilder,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        builder.register(AppSettings, lifecycle=Lifetime.SINGLETON)
        container = builder.build()

        monkeypatch.setenv("POOL_SIZE", "7")
        settings = container.resolve(AppSettings)
        monkeypatch.setenv("POOL_SIZE", "9")

        assert container.resolve(AppSettings) is settings
        assert container.resolve(Repository).settings is settings
        assert settings.pool_size == 7

    def test_explicit_registration_wins(self, builder: ContainerBuilder) -> None:
        settings = AppSettings(pool_size=20)
        builder.register_instance(AppSettings, settings)
        container = builder.build()

        assert container.resolve(AppSettings) is settings

    def test_strict_mode_does_not_build_settings(self, container_no_autoregister: Container) -> None:
        with pytest.raises(LightwireRegistrationNotFoundError):
            container_no_autoregister.resolve(AppSettings)
