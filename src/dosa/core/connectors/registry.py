"""Connector registry and factory.

Manifesto:
    Application code names a backend by its identifier (``"memory"``,
    ``"sqlite"``) and hands over a config mapping; it never imports a
    connector class. Registration happens during a setup phase, once per
    process. The first lookup seals the registry, so the set of backends
    cannot change while connectors are being created from it.

Features:
    - ``ConnectorRegistry`` with ``register()`` / ``create()`` / ``list_connectors()``
    - ``default_registry()`` runs the one-time setup of the built-in backends
    - ``get_connector()`` factory: identifier + config → connector
    - ``connector_from_settings()`` for ``DosaSettings``

Tags:
    dosa-core, connector, registry, factory

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import Any

from dosa.core.errors import ConfigError, ConnectorNotFoundError
from dosa.core.logging import get_logger
from dosa.core.settings import DosaSettings

from . import memory, sqlite
from .base import Connector

logger = get_logger(__name__)

ConnectorFactory = Callable[[Mapping[str, Any]], Connector]


class ConnectorRegistry:
    """
    Identifier → connector factory map.

    Factories are registered before the first :meth:`create` call; after
    that the registry is sealed and further registrations raise ConfigError.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ConnectorFactory] = {}
        self._sealed = False
        self._lock = threading.Lock()

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, name: str, factory: ConnectorFactory) -> None:
        """Register a connector factory under ``name``."""
        key = name.lower()
        with self._lock:
            if self._sealed:
                raise ConfigError(f"Cannot register connector {name!r}: registry already in use")
            if key in self._factories:
                raise ConfigError(f"Connector {name!r} is already registered")
            self._factories[key] = factory

    def create(self, name: str, config: Mapping[str, Any] | None = None) -> Connector:
        """Create a connector by identifier."""
        key = name.lower()
        with self._lock:
            self._sealed = True
            factory = self._factories.get(key)
        if factory is None:
            raise ConnectorNotFoundError(name, self.list_connectors())
        connector = factory(dict(config or {}))
        logger.debug("connector_created", connector=key)
        return connector

    def list_connectors(self) -> list[str]:
        """Registered identifiers, sorted."""
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._factories


_default: ConnectorRegistry | None = None
_default_lock = threading.Lock()


def _setup(registry: ConnectorRegistry) -> None:
    memory.register_connector(registry)
    sqlite.register_connector(registry)


def default_registry() -> ConnectorRegistry:
    """Process-wide registry holding the built-in backends (set up once)."""
    global _default
    with _default_lock:
        if _default is None:
            registry = ConnectorRegistry()
            _setup(registry)
            _default = registry
        return _default


def get_connector(name: str, config: Mapping[str, Any] | None = None) -> Connector:
    """
    Get a connector by identifier.

    Usage:
        connector = get_connector("memory")
        connector = get_connector("sqlite", {"path": "data.db"})
    """
    return default_registry().create(name, config)


def connector_from_settings(settings: DosaSettings) -> Connector:
    """Connector named by ``settings.connector`` built from ``settings.connector_options``."""
    return get_connector(settings.connector, settings.connector_options)


__all__ = [
    "ConnectorFactory",
    "ConnectorRegistry",
    "default_registry",
    "get_connector",
    "connector_from_settings",
]
