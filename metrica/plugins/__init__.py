"""
Built-in API plugins.

``register_builtin_plugins`` adds them to a registry; the ``metrica`` CLI
and the ASGI application call it at startup.
"""

from ..registry import PluginRegistry
from .example import ExampleAPI

__all__ = ["ExampleAPI", "BUILTIN_PLUGINS", "register_builtin_plugins"]

BUILTIN_PLUGINS = {
    "Example": ExampleAPI,
}


def register_builtin_plugins(registry: PluginRegistry) -> PluginRegistry:
    for name, api in BUILTIN_PLUGINS.items():
        if not registry.is_registered(name):
            registry.register(name, api)
    return registry
