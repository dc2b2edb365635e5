from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from lightwire.registration import RegistrationItem, RegistrationKey

if TYPE_CHECKING:
    from lightwire.sources import RegistrationSource

logger = logging.getLogger(__name__)


class RegistrationContainer:
    """Thread-safe store of registrations keyed by ``RegistrationKey``.

    Each key holds at most one direct registration. Adding a second registration
    for the same key demotes the current one to the duplicate list: ``try_get``
    returns the newest registration, while ``registrations_for`` returns all of
    them in registration order.
    """

    def __init__(self, registration_sources: Iterable[RegistrationSource] = ()) -> None:
        self._lock = threading.Lock()
        self._registrations: dict[RegistrationKey, RegistrationItem] = {}
        self._duplicate_registrations: list[RegistrationItem] = []
        self.registration_sources: list[RegistrationSource] = list(registration_sources)

    @property
    def all_registrations(self) -> tuple[RegistrationItem, ...]:
        """Snapshot of direct registrations followed by duplicates."""
        with self._lock:
            return (*self._registrations.values(), *self._duplicate_registrations)

    def try_get(self, key: RegistrationKey) -> RegistrationItem | None:
        """Return the direct registration stored under ``key``, if any."""
        return self._registrations.get(key)

    def add(self, registration: RegistrationItem) -> None:
        """Store a registration, demoting an existing one with the same key to duplicates."""
        with self._lock:
            existing = self._registrations.get(registration.key)
            if existing is not None:
                self._duplicate_registrations.append(existing)
                logger.debug("Registration %s demoted to duplicates by a newer one", existing.key)
            self._registrations[registration.key] = registration

    def add_if_absent(self, registration: RegistrationItem) -> RegistrationItem:
        """Store a registration unless its key is taken; return the stored registration.

        Concurrent callers racing to store the same key all receive the first
        caller's registration.
        """
        with self._lock:
            existing = self._registrations.get(registration.key)
            if existing is not None:
                return existing
            self._registrations[registration.key] = registration
            return registration

    def remove(self, key: RegistrationKey) -> None:
        """Remove the direct registration stored under ``key``. Duplicates are kept."""
        with self._lock:
            self._registrations.pop(key, None)

    def has_registration(self, key: RegistrationKey) -> bool:
        """Return whether ``key`` has a direct or duplicate registration."""
        if key in self._registrations:
            return True
        return self.has_duplicate(key)

    def has_duplicate(self, key: RegistrationKey) -> bool:
        """Return whether ``key`` was registered more than once."""
        with self._lock:
            return any(registration.key == key for registration in self._duplicate_registrations)

    def is_registered(self, contract: Any, name: str | None = None) -> bool:
        """Return whether ``contract`` (with ``name``) has a direct or duplicate registration."""
        return self.has_registration(RegistrationKey(contract, name))

    def registrations_for(self, contract: Any) -> list[RegistrationItem]:
        """Return every registration of ``contract`` under any name, in registration order."""
        matches = [
            registration
            for registration in self.all_registrations
            if registration.contract == contract
        ]
        matches.sort(key=lambda registration: registration.registration_order)
        return matches

    def is_supported_by_source(self, contract: Any) -> bool:
        """Return whether any registration source can produce a registration for ``contract``."""
        return any(source.supports(contract) for source in self.registration_sources)

    def __len__(self) -> int:
        return len(self._registrations)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, RegistrationKey) and self.has_registration(key)
