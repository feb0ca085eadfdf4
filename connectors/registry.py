from __future__ import annotations
from typing import Callable, Dict

from connectors.base import Connector


_FACTORIES: Dict[str, Callable[[], Connector]] = {}
_INSTANCES: Dict[str, Connector] = {}


def register(name: str):
    """Decorator to register a connector implementation by provider name.

    Instances are created on first use so settings are read when the connector is needed,
    not at import time. The instance is then shared, and with it its content cache.
    """
    def _wrap(cls):
        _FACTORIES[name] = cls
        return cls

    return _wrap


def _load_builtin_connectors() -> None:
    # Importing the module runs its @register decorator
    import connectors.google.connector  # noqa: F401


def get_connector(name: str) -> Connector:
    _load_builtin_connectors()
    if name not in _FACTORIES:
        raise KeyError(f"Connector '{name}' is not registered")
    if name not in _INSTANCES:
        _INSTANCES[name] = _FACTORIES[name]()
    return _INSTANCES[name]


def list_connectors() -> list[str]:
    _load_builtin_connectors()
    return sorted(_FACTORIES.keys())


def reset_connectors() -> None:
    """Drop shared instances (and their caches). Used by tests."""
    _INSTANCES.clear()
