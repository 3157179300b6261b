"""
Plugin registry - which API modules exist, which are enabled, and how to call them.

A plugin is any object (or zero-argument class) whose public methods are
the operations of one API module::

    class ReferersAPI:
        def getKeywords(self, idSite: int, period: str = "day") -> DataTable:
            ...

    registry = PluginRegistry()
    registry.register("Referers", ReferersAPI)
    registry.is_enabled("Referers")              # True
    registry.describe("Referers", "getKeywords")  # [ParameterDescriptor(...), ...]

Third-party packages can ship plugins through the ``metrica.plugins``
entry-point group; ``load_entry_points()`` registers them.
"""

from __future__ import annotations

import logging
from importlib import metadata as importlib_metadata
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from .descriptors import ParameterDescriptor, describe_callable
from .faults import MethodNotFoundFault, PluginNotEnabledFault, PluginRegistrationFault

__all__ = [
    "ENTRY_POINT_GROUP",
    "PluginAvailability",
    "OperationInvoker",
    "PluginRegistry",
]

ENTRY_POINT_GROUP = "metrica.plugins"


class PluginAvailability(Protocol):
    def is_enabled(self, module: str) -> bool: ...


class OperationInvoker(Protocol):
    def invoke(self, module: str, method: str, args: Sequence[Any]) -> Any: ...


class PluginRegistry:
    """
    In-memory plugin registry.

    Implements the three lookups the dispatcher relies on: availability
    (``is_enabled``), method descriptors (``exists`` / ``describe``) and
    invocation (``invoke``). Registration happens at startup; during
    dispatch the registry is only read.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("metrica.plugins")
        self._plugins: Dict[str, Any] = {}
        self._enabled: Set[str] = set()
        self._descriptors: Dict[Tuple[str, str], List[ParameterDescriptor]] = {}

    # ========================================================================
    # Registration
    # ========================================================================

    def register(self, name: str, api: Any, *, enabled: bool = True) -> Any:
        """
        Register *api* as module *name*. Classes are instantiated without arguments.

        Returns the registered API object.
        """
        if not name or not isinstance(name, str) or "." in name:
            raise PluginRegistrationFault(str(name), "module names must be non-empty and contain no '.'")

        if isinstance(api, type):
            try:
                api = api()
            except TypeError as exc:
                raise PluginRegistrationFault(name, f"cannot instantiate {api.__name__}: {exc}") from exc

        existing = self._plugins.get(name)
        if existing is not None and existing is not api:
            raise PluginRegistrationFault(name, "a different plugin is already registered under this name")

        self._plugins[name] = api
        if enabled:
            self._enabled.add(name)
        self.logger.debug("Registered plugin '%s' (%s)", name, type(api).__name__)
        return api

    def unregister(self, name: str) -> None:
        self._plugins.pop(name, None)
        self._enabled.discard(name)
        for key in [key for key in self._descriptors if key[0] == name]:
            del self._descriptors[key]

    def enable(self, name: str) -> None:
        if name not in self._plugins:
            raise PluginRegistrationFault(name, "plugin is not registered")
        self._enabled.add(name)

    def disable(self, name: str) -> None:
        self._enabled.discard(name)

    def set_enabled(self, names: Iterable[str]) -> None:
        """Enable exactly *names* (``"*"`` enables every registered plugin)."""
        names = list(names)
        if "*" in names:
            self._enabled = set(self._plugins)
            return
        unknown = [name for name in names if name not in self._plugins]
        for name in unknown:
            self.logger.warning("Cannot enable unknown plugin '%s'", name)
        self._enabled = {name for name in names if name in self._plugins}

    def load_entry_points(self, group: str = ENTRY_POINT_GROUP) -> List[str]:
        """Register every plugin advertised under the *group* entry point."""
        loaded: List[str] = []
        for ep in importlib_metadata.entry_points(group=group):
            try:
                api = ep.load()
                self.register(ep.name, api)
            except Exception:
                self.logger.exception("Failed to load plugin entry point '%s'", ep.name)
                continue
            loaded.append(ep.name)
        return loaded

    # ========================================================================
    # Lookups
    # ========================================================================

    @property
    def names(self) -> List[str]:
        return sorted(self._plugins)

    @property
    def enabled_names(self) -> List[str]:
        return sorted(self._enabled)

    def is_registered(self, module: str) -> bool:
        return module in self._plugins

    def is_enabled(self, module: str) -> bool:
        return module in self._enabled and module in self._plugins

    def get(self, module: str) -> Any:
        if not self.is_enabled(module):
            raise PluginNotEnabledFault(module)
        return self._plugins[module]

    def methods(self, module: str) -> List[str]:
        """Public operations exposed by *module*."""
        api = self._plugins.get(module)
        if api is None:
            return []
        return sorted(
            name for name in dir(api)
            if not name.startswith("_") and callable(getattr(api, name, None))
        )

    def exists(self, module: str, method: str) -> bool:
        api = self._plugins.get(module)
        if api is None or not method or method.startswith("_"):
            return False
        return callable(getattr(api, method, None))

    def describe(self, module: str, method: str) -> List[ParameterDescriptor]:
        key = (module, method)
        cached = self._descriptors.get(key)
        if cached is None:
            if not self.exists(module, method):
                raise MethodNotFoundFault(module, method)
            cached = describe_callable(getattr(self._plugins[module], method))
            self._descriptors[key] = cached
        return list(cached)

    def invoke(self, module: str, method: str, args: Sequence[Any]) -> Any:
        if not self.exists(module, method):
            raise MethodNotFoundFault(module, method)
        return getattr(self.get(module), method)(*args)
